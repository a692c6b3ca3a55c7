"""Boundary for specialist phases (discovery, builder).

A specialist owns its own subgraph and state shape. The orchestrator only knows
how to translate the parent state in and out, so specialists can evolve without
touching routing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from workflowAgent.graph.state import WorkflowState


class BasePhaseSubgraph(ABC):
    """A specialist phase that runs as its own compiled subgraph."""

    name: str = ""

    @abstractmethod
    def transform_input(self, state: WorkflowState) -> Dict[str, Any]:
        """Build the subgraph input from the parent state."""

    @abstractmethod
    def create(self, config: Optional[Dict[str, Any]] = None) -> Any:
        """Return a compiled runnable exposing ``ainvoke(input, config)``."""

    @abstractmethod
    def transform_output(self, output: Dict[str, Any], state: WorkflowState) -> Dict[str, Any]:
        """Map subgraph output to a parent state update.

        The returned dict may carry ``coordination_log`` entries (typically one
        ``completed`` entry with a short summary) and ``workflow_operations``.
        """


__all__ = ["BasePhaseSubgraph"]
