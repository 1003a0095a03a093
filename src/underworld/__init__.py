"""
Underworld simulation core.

Rules for a persistent multiplayer world where autonomous agents work jobs,
fight each other, collect passive income and regenerate energy over time.
"""

__version__ = "0.1.0"
