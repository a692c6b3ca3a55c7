"""Orchestrator graph: state, coordination log, routing and nodes."""

from .state import (
    CLEAR_COORDINATION_LOG,
    CoordinationLogEntry,
    PhaseId,
    PhaseStatus,
    SimpleWorkflow,
    WorkflowState,
    empty_workflow,
)

__all__ = [
    "CLEAR_COORDINATION_LOG",
    "CoordinationLogEntry",
    "PhaseId",
    "PhaseStatus",
    "SimpleWorkflow",
    "WorkflowState",
    "empty_workflow",
]
