"""
Run the headless simulator.

Usage:
    python -m northern_journey simulate --turns 30
"""

import sys

from .interface.cli import main

if __name__ == "__main__":
    sys.exit(main())
