"""Operator interface for the underworld."""

from .cli import main

__all__ = ["main"]
