"""State persistence."""

from .checkpointer import build_checkpointer

__all__ = ["build_checkpointer"]
