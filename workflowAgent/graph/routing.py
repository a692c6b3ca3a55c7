"""Routing logic for the orchestrator graph.

Routing functions are pure: they read ``next_phase`` (or message state) written
by the preceding node and never call a model.
"""

from __future__ import annotations

import logging
from typing import Literal

from workflowAgent.graph.state import WorkflowState
from workflowAgent.utils.logging_utils import log_routing_decision

LOGGER = logging.getLogger("workflowAgent.routing")

PhaseNode = Literal["responder", "discovery_subgraph", "builder_subgraph", "assistant_subgraph"]

_PHASE_TO_NODE = {
    "responder": "responder",
    "discovery": "discovery_subgraph",
    "builder": "builder_subgraph",
    "assistant": "assistant_subgraph",
}

STATE_ACTIONS = (
    "delete_messages",
    "compact_messages",
    "auto_compact_messages",
    "cleanup_dangling",
    "clear_error_state",
    "create_workflow_name",
    "continue",
)


def route_to_node(next_phase: str) -> PhaseNode:
    """Map a phase id to its graph node. Unknown values go to the responder."""
    return _PHASE_TO_NODE.get(next_phase, "responder")  # type: ignore[return-value]


def make_check_state_route(*, plan_mode_enabled: bool = False, merge_ask_build: bool = False):
    """Build the router that follows ``check_state``.

    In plan mode the first pass of a turn skips the supervisor and goes straight
    to discovery (which produces the plan), unless ask/build routing is merged.
    """

    def check_state_route(state: WorkflowState) -> str:
        action = state.get("next_phase") or "continue"

        if action == "auto_compact_messages":
            decision = "compact_messages"
        elif action in STATE_ACTIONS and action != "continue":
            decision = action
        elif (
            plan_mode_enabled
            and state.get("mode") == "plan"
            and not state.get("plan_output")
            and not merge_ask_build
        ):
            decision = "discovery_subgraph"
        else:
            decision = "supervisor"

        log_routing_decision(LOGGER, "check_state", decision, f"state action: {action}")
        return decision

    return check_state_route


def compact_route(state: WorkflowState) -> Literal["check_state", "responder"]:
    """After compaction: auto-compaction keeps the latest user message and re-checks
    state; a manual ``/compact`` leaves nothing to answer, so acknowledge it."""
    decision = "check_state" if state.get("messages") else "responder"
    log_routing_decision(LOGGER, "compact_messages", decision)
    return decision


def supervisor_route(state: WorkflowState) -> PhaseNode:
    decision = route_to_node(state.get("next_phase", "responder"))
    log_routing_decision(LOGGER, "supervisor", decision)
    return decision


def next_phase_route(state: WorkflowState) -> PhaseNode:
    decision = route_to_node(state.get("next_phase", "responder"))
    log_routing_decision(LOGGER, "route_next_phase", decision)
    return decision


__all__ = [
    "route_to_node",
    "make_check_state_route",
    "compact_route",
    "supervisor_route",
    "next_phase_route",
    "STATE_ACTIONS",
]
