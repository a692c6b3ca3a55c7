"""Utilities for WorkflowAgent."""

from .cancellation import CancellationToken
from .error_handler import (
    AssistantSdkError,
    ModelInvocationError,
    PhaseExecutionError,
    TurnCancelledError,
    WorkflowAgentError,
    sanitize_llm_error_message,
)
from .logging_utils import (
    log_node_entry,
    log_node_exit,
    log_routing_decision,
    log_tool_call,
    log_tool_result,
    log_user_message,
    setup_logging,
)

__all__ = [
    "CancellationToken",
    "WorkflowAgentError",
    "PhaseExecutionError",
    "ModelInvocationError",
    "AssistantSdkError",
    "TurnCancelledError",
    "sanitize_llm_error_message",
    "setup_logging",
    "log_routing_decision",
    "log_node_entry",
    "log_node_exit",
    "log_tool_call",
    "log_tool_result",
    "log_user_message",
]
