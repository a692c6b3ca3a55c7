"""Routing agents: the supervisor and the triage tool loop."""

from .payload import ChatPayload, ConversationEntry, conversation_entries
from .supervisor import SupervisorAgent, SupervisorContext, SupervisorRouting, build_supervisor_node
from .triage import AgentOutcome, TriageAgent, TriageParams, TriageRun, ToolResult

__all__ = [
    "ChatPayload",
    "ConversationEntry",
    "conversation_entries",
    "SupervisorAgent",
    "SupervisorContext",
    "SupervisorRouting",
    "build_supervisor_node",
    "AgentOutcome",
    "TriageAgent",
    "TriageParams",
    "TriageRun",
    "ToolResult",
]
