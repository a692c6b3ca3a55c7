"""Phase executor: wraps one specialist phase as a graph node.

Every phase invocation appends an ``in_progress`` entry before its outcome, and
any ordinary failure becomes data (an ``error`` entry plus a user-safe message)
so the turn can still reach the responder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from langchain_core.messages import HumanMessage
from langchain_core.runnables import RunnableConfig
from langgraph.errors import GraphBubbleUp

from workflowAgent.graph.coordination_log import (
    create_error_metadata,
    create_phase_metadata,
    is_coordination_log_entry,
    make_entry,
    now_ms,
)
from workflowAgent.graph.state import CoordinationLogEntry, WorkflowState
from workflowAgent.phases.base import BasePhaseSubgraph
from workflowAgent.utils.error_handler import TurnCancelledError, sanitize_llm_error_message
from workflowAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


@dataclass
class PhaseResult:
    """What a phase returns: a partial state update plus its own log entries."""

    output: Dict[str, Any] = field(default_factory=dict)
    coordination_log: List[CoordinationLogEntry] = field(default_factory=list)


PhaseExecute = Callable[[WorkflowState, Optional[RunnableConfig]], Awaitable[PhaseResult]]


def create_phase_node_handler(phase: str, execute: PhaseExecute) -> Callable:
    """Build an async graph node that runs ``execute`` with standard logging and recovery."""

    async def phase_node(state: WorkflowState, config: Optional[RunnableConfig] = None) -> dict:
        log_node_entry(LOGGER, phase, state)
        started_at = now_ms()
        in_progress = make_entry(
            phase,
            "in_progress",
            f"Starting {phase}",
            timestamp=started_at,
            metadata=create_phase_metadata(phase),
        )

        try:
            result = await execute(state, config)
        except (GraphBubbleUp, TurnCancelledError):
            # interrupt() and a cancelled turn are control flow, not failures
            raise
        except Exception as exc:
            LOGGER.error(f"Phase '{phase}' failed: {exc}", exc_info=True)
            safe_message = sanitize_llm_error_message(exc)
            error_entry = make_entry(
                phase,
                "error",
                f"Error: {safe_message}",
                metadata=create_error_metadata(failed_phase=phase, error_message=str(exc)),
            )
            updates = {
                "next_phase": "responder",
                "messages": [
                    HumanMessage(name="system_error", content=f"Error in {phase}: {safe_message}")
                ],
                "coordination_log": [in_progress, error_entry],
            }
            log_node_exit(LOGGER, phase, updates)
            return updates

        entries = []
        for entry in result.coordination_log:
            if is_coordination_log_entry(entry):
                entries.append(entry)
            else:
                LOGGER.warning(f"Phase '{phase}' returned a malformed coordination entry, dropping it")

        updates = {**result.output, "coordination_log": [in_progress, *entries]}
        log_node_exit(LOGGER, phase, updates)
        return updates

    phase_node.__name__ = f"{phase}_node"
    return phase_node


def create_compiled_phase_executor(
    subgraph: BasePhaseSubgraph,
    compiled: Any,
    recursion_limit: int,
) -> PhaseExecute:
    """Adapt a specialist subgraph to the ``execute`` signature.

    ``transform_output`` may return ``coordination_log`` alongside its state
    update; it is split off so the handler can validate and order it.
    """

    async def execute(state: WorkflowState, config: Optional[RunnableConfig] = None) -> PhaseResult:
        subgraph_input = subgraph.transform_input(state)
        run_config: Dict[str, Any] = {**(config or {}), "recursion_limit": recursion_limit}
        subgraph_output = await compiled.ainvoke(subgraph_input, run_config)

        output = dict(subgraph.transform_output(subgraph_output, state))
        entries = list(output.pop("coordination_log", None) or [])
        return PhaseResult(output=output, coordination_log=entries)

    return execute


__all__ = [
    "PhaseResult",
    "PhaseExecute",
    "create_phase_node_handler",
    "create_compiled_phase_executor",
]
