"""Turn input shared by the triage loop and the graph entry."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, Optional, Union

from typing_extensions import TypedDict

from workflowAgent.graph.state import SimpleWorkflow


class BuildRequestEntry(TypedDict):
    type: Literal["build-request"]
    message: str


class AssistantExchangeEntry(TypedDict):
    type: Literal["assistant-exchange"]
    user_query: str
    assistant_summary: str


class PlanEntry(TypedDict):
    type: Literal["plan"]
    user_query: str
    plan: str


ConversationEntry = Union[BuildRequestEntry, AssistantExchangeEntry, PlanEntry]


@dataclass
class ChatPayload:
    """One user message plus what the editor knows about the workflow.

    ``workflow_context`` keys: ``current_workflow`` (the workflow document),
    ``selected_nodes`` (names of nodes selected in the editor) and
    ``execution_data`` (last run results, if any).
    """

    message: str
    id: Optional[str] = None
    workflow_context: Optional[Dict[str, Any]] = None
    mode: Literal["build", "plan"] = "build"
    plan_decision: Optional[Literal["approve", "reject", "modify"]] = None
    plan_feedback: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def current_workflow(self) -> Optional[SimpleWorkflow]:
        workflow = (self.workflow_context or {}).get("current_workflow")
        if not workflow:
            return None
        return {
            "name": workflow.get("name") or "",
            "nodes": list(workflow.get("nodes") or []),
            "connections": dict(workflow.get("connections") or {}),
        }

    def with_message(self, message: str) -> "ChatPayload":
        return replace(self, message=message)


def conversation_entries(entries: Optional[List[ConversationEntry]]) -> List[ConversationEntry]:
    """Drop entries of unknown type so a stale session can't break prompt rendering."""
    known = {"build-request", "assistant-exchange", "plan"}
    return [entry for entry in (entries or []) if entry.get("type") in known]


__all__ = [
    "ChatPayload",
    "ConversationEntry",
    "BuildRequestEntry",
    "AssistantExchangeEntry",
    "PlanEntry",
    "conversation_entries",
]
