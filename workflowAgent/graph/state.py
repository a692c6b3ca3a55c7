"""Shared state definition for the orchestrator graph."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Sequence, TypedDict, Annotated

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages
from typing_extensions import NotRequired


PhaseId = Literal["supervisor", "discovery", "builder", "responder", "assistant"]
PhaseStatus = Literal["in_progress", "completed", "error"]

# Leading element of a coordination_log update that replaces the whole log
# (same idea as RemoveMessage(id=REMOVE_ALL_MESSAGES) for messages).
CLEAR_COORDINATION_LOG = "__clear_coordination_log__"


class CoordinationLogEntry(TypedDict):
    """One phase execution event. Immutable once appended."""

    phase: PhaseId
    status: PhaseStatus
    timestamp: int  # epoch milliseconds
    summary: str
    metadata: NotRequired[Dict[str, Any]]
    output: NotRequired[str]


class SimpleWorkflow(TypedDict):
    """Snapshot of the workflow document being built."""

    name: str
    nodes: List[Dict[str, Any]]
    connections: Dict[str, Any]


def merge_coordination_log(
    left: Optional[Sequence[Any]], right: Optional[Sequence[Any]]
) -> List[CoordinationLogEntry]:
    """Reducer for ``coordination_log``: append-only concatenation.

    An update whose first element is ``CLEAR_COORDINATION_LOG`` replaces the log
    with the remaining elements. Only between-turn preprocessing uses that form.
    """
    current = list(left or [])
    if not right:
        return current

    update = list(right)
    if update[0] == CLEAR_COORDINATION_LOG:
        return update[1:]
    return current + update


def merge_operations(left: Optional[List[dict]], right: Optional[List[dict]]) -> List[dict]:
    """Reducer for ``workflow_operations``: concatenate, ``None`` clears the buffer."""
    if right is None:
        return []
    return list(left or []) + list(right)


def empty_workflow(name: str = "") -> SimpleWorkflow:
    return {"name": name, "nodes": [], "connections": {}}


class WorkflowState(TypedDict, total=False):
    """State threaded through one turn of the orchestrator graph.

    Phases receive the state and return partial updates: list fields are merged by
    their reducers, scalar fields are overwritten.
    """

    # ========== Conversation ==========
    messages: Annotated[List[BaseMessage], add_messages]
    previous_summary: Optional[str]  # Summary produced by compaction

    # ========== Workflow document ==========
    workflow_json: SimpleWorkflow
    workflow_operations: Annotated[List[dict], merge_operations]  # Buffered mutations, applied by process_operations
    workflow_context: Optional[Dict[str, Any]]  # Selected nodes, execution data, etc.
    discovery_context: Optional[Dict[str, Any]]  # Output of discovery, consumed by builder/responder

    # ========== Coordination ==========
    coordination_log: Annotated[List[CoordinationLogEntry], merge_coordination_log]
    next_phase: str  # PhaseId, "continue", or a preprocessing action from check_state

    # ========== Assistant session ==========
    sdk_session_id: Optional[str]

    # ========== Plan mode ==========
    mode: Literal["build", "plan"]
    plan_output: Optional[str]
    plan_decision: Optional[Literal["approve", "reject", "modify"]]
    plan_feedback: Optional[str]
    plan_previous: Optional[str]
