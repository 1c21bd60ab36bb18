"""
Command-line interface for Northern Journey.

Headless runner: drives the turn engine for N turns and prints a resource
table. Useful for balancing content and smoke testing a content pack.

Usage:
    northern-journey simulate --turns 30 --seed 7
    northern-journey continue --save saves/northernjourney_save.json --turns 10
"""

import argparse
import logging
import sys
from pathlib import Path

from ..config import load_config
from ..content import Catalog, default_catalog
from ..state.store import JsonSnapshotStore
from ..systems.turns import TurnOrchestrator
from ..tools.dice import Dice
from .renderer import console, show_game_over, show_turns

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="northern-journey",
        description="Northern Journey - headless village simulation",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="More logging (-v info, -vv debug)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("simulate", "Start a new game and run it"),
        ("continue", "Resume the saved game (or start one) and run it"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--turns", "-n", type=int, default=20, help="Turns to run")
        sub.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
        sub.add_argument("--content", type=Path, default=None, help="Content directory (JSON/YAML)")
        sub.add_argument("--config", type=Path, default=None, help="Config file (JSON/YAML)")
        sub.add_argument("--save", type=Path, default=None, help="Save file; omit to run without saving")
        sub.add_argument(
            "--choice",
            type=int,
            default=0,
            help="Choice index picked for every event that asks (default 0)",
        )

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )


def run(args: argparse.Namespace) -> int:
    """Run the requested command. Returns a process exit code."""
    catalog = Catalog.from_directory(args.content) if args.content else default_catalog()
    config = load_config(args.config)
    store = JsonSnapshotStore(args.save) if args.save else None

    orchestrator = TurnOrchestrator(
        catalog,
        config=config,
        dice=Dice(seed=args.seed),
        store=store,
    )

    if args.command == "continue":
        if orchestrator.continue_game():
            console.print(f"Resumed at turn {orchestrator.ledger.turn}")
        else:
            console.print("No usable save, started a new game")
    else:
        orchestrator.new_game()

    results = []
    for _ in range(args.turns):
        result = orchestrator.end_turn()
        if result is None:
            break
        results.append(result)

        # Nobody is at the table, so every question gets the same answer
        for event_id in result.pending_events:
            outcome = orchestrator.resolve_event_choice(event_id, args.choice)
            if outcome.rejected:
                logger.info(f"Choice {args.choice} on {event_id} rejected: {outcome.message}")

        if result.is_game_over:
            break

    show_turns(results)
    if orchestrator.is_game_over:
        show_game_over(orchestrator.game_over_reason)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        return run(args)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
