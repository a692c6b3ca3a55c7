"""Deterministic re-routing after a phase finishes."""

from __future__ import annotations

import logging

from workflowAgent.graph.coordination_log import get_next_phase_from_log
from workflowAgent.graph.state import WorkflowState

LOGGER = logging.getLogger(__name__)


def build_route_next_phase_node(*, plan_mode_enabled: bool = False):
    """Build ``route_next_phase``: the coordination log decides, plan decisions override.

    - ``reject`` ends the turn at the responder and drops the plan
    - ``modify`` sends the feedback back to discovery for a new plan
    - builder is held back while a plan-mode turn has no plan yet
    """

    async def route_next_phase_node(state: WorkflowState) -> dict:
        next_phase = get_next_phase_from_log(state.get("coordination_log") or [])
        decision = state.get("plan_decision")

        if decision == "reject":
            LOGGER.info("Plan rejected, finishing turn")
            return {
                "next_phase": "responder",
                "plan_decision": None,
                "plan_output": None,
                "plan_feedback": None,
                "plan_previous": None,
            }

        if decision == "modify":
            LOGGER.info("Plan modification requested, re-running discovery")
            return {"next_phase": "discovery", "plan_decision": None, "plan_output": None}

        if (
            next_phase == "builder"
            and plan_mode_enabled
            and state.get("mode") == "plan"
            and not state.get("plan_output")
        ):
            LOGGER.info("Plan mode without a plan yet, running discovery again")
            return {"next_phase": "discovery", "plan_decision": None}

        LOGGER.info(f"Next phase from coordination log: {next_phase}")
        return {"next_phase": next_phase, "plan_decision": None}

    return route_next_phase_node


__all__ = ["build_route_next_phase_node"]
