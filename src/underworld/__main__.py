"""
Run the operator CLI.

Usage:
    python -m underworld --world world.json tick
"""

import sys

from .interface.cli import main

sys.exit(main())
