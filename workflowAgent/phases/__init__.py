"""Specialist phase boundary."""

from .base import BasePhaseSubgraph

__all__ = ["BasePhaseSubgraph"]
