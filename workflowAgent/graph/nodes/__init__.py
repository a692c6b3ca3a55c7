"""Graph node builders."""

from .assistant import build_assistant_execute
from .next_phase import build_route_next_phase_node
from .operations import apply_operations, process_operations_node
from .phase_executor import PhaseResult, create_compiled_phase_executor, create_phase_node_handler
from .preprocessing import (
    build_check_state_node,
    build_compact_messages_node,
    build_create_workflow_name_node,
    cleanup_dangling_node,
    clear_error_state_node,
    delete_messages_node,
    determine_state_action,
)
from .responder import build_responder_node

__all__ = [
    "build_assistant_execute",
    "build_route_next_phase_node",
    "apply_operations",
    "process_operations_node",
    "PhaseResult",
    "create_compiled_phase_executor",
    "create_phase_node_handler",
    "build_check_state_node",
    "build_compact_messages_node",
    "build_create_workflow_name_node",
    "cleanup_dangling_node",
    "clear_error_state_node",
    "delete_messages_node",
    "determine_state_action",
    "build_responder_node",
]
