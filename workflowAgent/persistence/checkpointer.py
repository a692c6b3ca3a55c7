"""Checkpointer for orchestrator state.

Turn state (messages, coordination log, workflow document, assistant session)
is rehydrated from the checkpointer by thread id at the start of every turn.
"""

from __future__ import annotations

from langgraph.checkpoint.memory import MemorySaver


def build_checkpointer():
    """Build the default LangGraph checkpointer.

    MemorySaver keeps state for the lifetime of the process. Callers that need
    durable sessions pass their own checkpointer to ``build_workflow_app``.
    """
    return MemorySaver()


__all__ = ["build_checkpointer"]
