"""Graph builder for the multi-agent orchestrator.

Graph architecture:

    START → check_state ─┬─ cleanup_dangling / clear_error_state / create_workflow_name ─→ check_state
                         ├─ compact_messages ─→ check_state (auto) | responder (manual)
                         ├─ delete_messages ─→ responder
                         └─ supervisor ─→ discovery_subgraph | builder_subgraph | assistant_subgraph | responder

    discovery_subgraph / builder_subgraph → process_operations → route_next_phase
    assistant_subgraph → route_next_phase
    route_next_phase → (next phase from the coordination log)
    responder → END

Only the supervisor makes a model-based routing decision, once per turn.
Every later hop is computed from the coordination log.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from langgraph.graph import END, START, StateGraph

from workflowAgent.agents.supervisor import SupervisorAgent, build_supervisor_node
from workflowAgent.assistant.handler import AssistantHandler
from workflowAgent.config.settings import OrchestrationSettings
from workflowAgent.graph.nodes import (
    build_assistant_execute,
    build_check_state_node,
    build_compact_messages_node,
    build_create_workflow_name_node,
    build_responder_node,
    build_route_next_phase_node,
    cleanup_dangling_node,
    clear_error_state_node,
    create_compiled_phase_executor,
    create_phase_node_handler,
    delete_messages_node,
    process_operations_node,
)
from workflowAgent.graph.nodes.responder import GenerationCallback
from workflowAgent.graph.routing import compact_route, make_check_state_route, next_phase_route, supervisor_route
from workflowAgent.graph.state import WorkflowState
from workflowAgent.phases.base import BasePhaseSubgraph

if TYPE_CHECKING:
    from workflowAgent.runtime.model_resolver import StageLLMs

LOGGER = logging.getLogger(__name__)

PHASE_NODES = {
    "responder": "responder",
    "discovery_subgraph": "discovery_subgraph",
    "builder_subgraph": "builder_subgraph",
    "assistant_subgraph": "assistant_subgraph",
}


def build_orchestrator_graph(
    *,
    stage_llms: StageLLMs,
    discovery: BasePhaseSubgraph,
    builder: BasePhaseSubgraph,
    orchestration: Optional[OrchestrationSettings] = None,
    assistant_handler: Optional[AssistantHandler] = None,
    assistant_timeout: Optional[float] = None,
    checkpointer=None,
    on_generation_success: Optional[GenerationCallback] = None,
):
    """Build the orchestrator graph.

    Args:
        stage_llms: Model for each stage
        discovery: Discovery specialist (finds nodes, produces the plan in plan mode)
        builder: Builder specialist (creates nodes, connections and parameters)
        orchestration: Iteration limits and feature toggles
        assistant_handler: Knowledge assistant; without it the assistant phase fails into the responder
        assistant_timeout: Optional per-call timeout (seconds) for the assistant phase
        checkpointer: Optional checkpointer for persistence
        on_generation_success: Called by the responder after a successful build turn

    Returns:
        Compiled LangGraph application
    """
    orchestration = orchestration or OrchestrationSettings()

    # ========== Build Nodes ==========
    supervisor = SupervisorAgent(stage_llms.supervisor, merge_ask_build=orchestration.merge_ask_build)

    compiled_discovery = discovery.create(
        {"llm": stage_llms.discovery, "planner_llm": stage_llms.planner, "plan_mode": orchestration.plan_mode}
    )
    compiled_builder = builder.create({"llm": stage_llms.builder})

    discovery_node = create_phase_node_handler(
        "discovery",
        create_compiled_phase_executor(discovery, compiled_discovery, orchestration.max_discovery_iterations),
    )
    builder_node = create_phase_node_handler(
        "builder",
        create_compiled_phase_executor(builder, compiled_builder, orchestration.max_builder_iterations),
    )
    assistant_node = create_phase_node_handler(
        "assistant",
        build_assistant_execute(assistant_handler, timeout_seconds=assistant_timeout),
    )

    # ========== Build Graph ==========
    graph = StateGraph(WorkflowState)

    graph.add_node("check_state", build_check_state_node(auto_compact_threshold=orchestration.auto_compact_threshold_tokens))
    graph.add_node("cleanup_dangling", cleanup_dangling_node)
    graph.add_node("compact_messages", build_compact_messages_node(llm=stage_llms.responder))
    graph.add_node("delete_messages", delete_messages_node)
    graph.add_node("create_workflow_name", build_create_workflow_name_node(llm=stage_llms.responder))
    graph.add_node("clear_error_state", clear_error_state_node)
    graph.add_node("supervisor", build_supervisor_node(supervisor=supervisor))
    graph.add_node("discovery_subgraph", discovery_node)
    graph.add_node("builder_subgraph", builder_node)
    graph.add_node("assistant_subgraph", assistant_node)
    graph.add_node("process_operations", process_operations_node)
    graph.add_node("route_next_phase", build_route_next_phase_node(plan_mode_enabled=orchestration.plan_mode))
    graph.add_node(
        "responder",
        build_responder_node(llm=stage_llms.responder, on_generation_success=on_generation_success),
    )

    # ========== Routing ==========
    graph.add_edge(START, "check_state")

    graph.add_conditional_edges(
        "check_state",
        make_check_state_route(
            plan_mode_enabled=orchestration.plan_mode,
            merge_ask_build=orchestration.merge_ask_build,
        ),
        {
            "cleanup_dangling": "cleanup_dangling",
            "compact_messages": "compact_messages",
            "delete_messages": "delete_messages",
            "create_workflow_name": "create_workflow_name",
            "clear_error_state": "clear_error_state",
            "discovery_subgraph": "discovery_subgraph",
            "supervisor": "supervisor",
        },
    )

    # Preprocessing handlers re-check state until it says "continue"
    graph.add_edge("cleanup_dangling", "check_state")
    graph.add_edge("clear_error_state", "check_state")
    graph.add_edge("create_workflow_name", "check_state")
    graph.add_edge("delete_messages", "responder")
    graph.add_conditional_edges(
        "compact_messages",
        compact_route,
        {"check_state": "check_state", "responder": "responder"},
    )

    # Supervisor makes the first decision, the coordination log makes the rest
    graph.add_conditional_edges("supervisor", supervisor_route, PHASE_NODES)
    graph.add_conditional_edges("route_next_phase", next_phase_route, PHASE_NODES)

    graph.add_edge("discovery_subgraph", "process_operations")
    graph.add_edge("builder_subgraph", "process_operations")
    graph.add_edge("process_operations", "route_next_phase")
    graph.add_edge("assistant_subgraph", "route_next_phase")

    graph.add_edge("responder", END)

    LOGGER.info(
        f"Orchestrator graph built (merge_ask_build={orchestration.merge_ask_build}, "
        f"plan_mode={orchestration.plan_mode}, assistant={'on' if assistant_handler else 'off'})"
    )

    # ========== Compile ==========
    return graph.compile(checkpointer=checkpointer)


__all__ = ["build_orchestrator_graph"]
