"""
Dialogue engine for Northern Journey.

Runs branching dialogue graphs one at a time. A dialogue is either
inactive or sitting on a node of a registered graph. Choices may cost
resources, roll against a risk, or make a skill check that picks the
next node.

Dangling node references never raise: moving to an unknown node simply
ends the dialogue.
"""

import logging
from typing import Any

from ..errors import NotFoundError
from ..state.event_bus import EventBus, EventType
from ..state.schema import DialogueChoice, DialogueGraph, DialogueNode
from ..tools.dice import Dice, skill_check
from .effects import apply_effects
from .events import EventEngine
from .resources import ResourceLedger

logger = logging.getLogger(__name__)


START_COMBAT = "start_combat"


class DialogueEngine:
    """
    Two-state machine: inactive, or active on (graph, node).

    Flags written by dialogue effects go into the event engine's flag set
    so story triggers can see them.
    """

    def __init__(
        self,
        bus: EventBus,
        dice: Dice,
        events: EventEngine,
        graphs: dict[str, DialogueGraph] | None = None,
    ):
        self._bus = bus
        self._dice = dice
        self._events = events
        self._graphs: dict[str, DialogueGraph] = dict(graphs or {})
        self._graph: DialogueGraph | None = None
        self._node_id: str | None = None

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def register(self, graph: DialogueGraph) -> None:
        self._graphs[graph.id] = graph

    def has_dialogue(self, dialogue_id: str) -> bool:
        return dialogue_id in self._graphs

    def _get_graph(self, dialogue_id: str) -> DialogueGraph:
        graph = self._graphs.get(dialogue_id)
        if graph is None:
            raise NotFoundError("dialogue", dialogue_id)
        return graph

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._graph is not None

    @property
    def current_node(self) -> DialogueNode | None:
        if self._graph is None or self._node_id is None:
            return None
        return self._graph.nodes.get(self._node_id)

    def current_state(self) -> dict[str, Any] | None:
        """What a dialogue box needs to render, or None when inactive."""
        node = self.current_node
        if self._graph is None or node is None:
            return None
        return {
            "dialogue_id": self._graph.id,
            "node_id": self._node_id,
            "speaker": node.speaker,
            "portrait": node.portrait,
            "text": node.text,
        }

    def available_choices(self, node: DialogueNode, ledger: ResourceLedger) -> list[dict[str, Any]]:
        """Every choice on a node, marked available when its requirements are met."""
        return [
            {
                "index": index,
                "text": choice.text,
                "requires": dict(choice.requires or {}),
                "available": not choice.requires or ledger.has_enough(choice.requires),
            }
            for index, choice in enumerate(node.choices)
        ]

    # -------------------------------------------------------------------------
    # Flow
    # -------------------------------------------------------------------------

    def start_dialogue(self, dialogue_id: str, ledger: ResourceLedger) -> bool:
        """
        Open a dialogue on its start node.

        Returns:
            False if another dialogue is running, or the graph or its start
            node is unknown (the engine stays inactive)
        """
        if self.is_active:
            logger.warning(f"Cannot start {dialogue_id}: {self._graph.id} is still running")
            return False

        try:
            graph = self._get_graph(dialogue_id)
        except NotFoundError as e:
            logger.warning(str(e))
            return False

        node = graph.nodes.get(graph.start_node)
        if node is None:
            logger.warning(f"Start node {graph.start_node} not found in dialogue {dialogue_id}")
            return False

        self._graph = graph
        self._node_id = graph.start_node

        self._apply_effects(node.effects, ledger)
        self._bus.emit(
            EventType.DIALOGUE_START,
            dialogue=graph.id,
            node=self._node_id,
            speaker=node.speaker,
            text=node.text,
            portrait=node.portrait,
            choices=self.available_choices(node, ledger),
        )
        return True

    def select_choice(self, index: int, ledger: ResourceLedger) -> bool:
        """
        Pick a choice on the current node.

        Returns:
            False when inactive, the index is bad, or requirements are unmet
        """
        node = self.current_node
        if node is None:
            logger.warning("No active dialogue")
            return False
        if index < 0 or index >= len(node.choices):
            logger.warning(f"Invalid dialogue choice {index} on node {self._node_id}")
            return False

        choice: DialogueChoice = node.choices[index]
        if choice.requires and not ledger.has_enough(choice.requires):
            self._bus.emit(
                EventType.DIALOGUE_INSUFFICIENT_RESOURCES,
                dialogue=self._graph.id,
                choice=index,
                requires=dict(choice.requires),
            )
            return False

        self._apply_effects(choice.effects, ledger)

        if choice.skill_check:
            check = skill_check(self._dice, choice.skill_check, ledger.get("population"))
            self.move_to_node(choice.success if check.success else choice.failure, ledger)
            return True

        if choice.risk is not None:
            success = self._dice.risk_survived(choice.risk)
            self._apply_effects(choice.success_effects if success else choice.failure_effects, ledger)
            if not success and choice.failure_message:
                self._bus.emit(EventType.DIALOGUE_RISK_FAILED, message=choice.failure_message)

        if choice.next:
            self.move_to_node(choice.next, ledger)
        else:
            self.end_dialogue()
        return True

    def move_to_node(self, node_id: str | None, ledger: ResourceLedger) -> bool:
        """
        Advance to a node in the current graph.

        Unknown ids end the dialogue. A combat node hands off to combat and
        leaves the dialogue parked on that node.
        """
        if self._graph is None:
            return False

        node = self._graph.nodes.get(node_id) if node_id else None
        if node is None:
            logger.warning(f"Dialogue node {node_id} not found in {self._graph.id}, ending")
            self.end_dialogue()
            return False

        self._node_id = node_id

        if node.action == START_COMBAT:
            self._bus.emit(
                EventType.DIALOGUE_COMBAT_START,
                dialogue=self._graph.id,
                enemy=node.enemy,
                on_win=node.on_win,
                on_lose=node.on_lose,
            )
            return True

        self._apply_effects(node.effects, ledger)

        if node.end:
            self.end_dialogue()
            return True

        self._bus.emit(
            EventType.DIALOGUE_CONTINUE,
            dialogue=self._graph.id,
            node=node_id,
            speaker=node.speaker,
            text=node.text,
            portrait=node.portrait,
            choices=self.available_choices(node, ledger),
        )
        return True

    def resolve_combat(self, won: bool, ledger: ResourceLedger) -> bool:
        """Continue a dialogue parked on a combat node at its on_win / on_lose node."""
        node = self.current_node
        if node is None or node.action != START_COMBAT:
            logger.warning("No combat pending in dialogue")
            return False
        return self.move_to_node(node.on_win if won else node.on_lose, ledger)

    def end_dialogue(self) -> None:
        dialogue_id = self._graph.id if self._graph else None
        self._graph = None
        self._node_id = None
        self._bus.emit(EventType.DIALOGUE_END, dialogue=dialogue_id)

    def reset(self) -> None:
        """Drop any running dialogue without notifying."""
        self._graph = None
        self._node_id = None

    def _apply_effects(self, effects: dict[str, Any] | None, ledger: ResourceLedger) -> None:
        apply_effects(
            effects,
            ledger,
            self._events.flags,
            self._bus,
            source=self._graph.id if self._graph else None,
            ignore_reputation=True,
        )
