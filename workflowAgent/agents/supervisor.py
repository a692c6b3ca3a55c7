"""Supervisor: the one model call that picks the first phase of a turn.

After the first phase runs, routing is deterministic (see
``coordination_log.get_next_phase_from_log``), so the supervisor is only
consulted when the log says ``continue``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Type

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.runnables import RunnableConfig
from pydantic import BaseModel, Field

from workflowAgent.graph.context import format_selected_nodes, summarize_workflow
from workflowAgent.graph.coordination_log import get_current_turn_entries, summarize_coordination_log
from workflowAgent.graph.state import CoordinationLogEntry, SimpleWorkflow, WorkflowState
from workflowAgent.utils.error_handler import ModelInvocationError
from workflowAgent.utils.logging_utils import log_node_entry
from workflowAgent.utils.prompt_builder import PromptBuilder

LOGGER = logging.getLogger(__name__)


class SupervisorRouting(BaseModel):
    """Routing decision with the assistant option (ask/build routing merged)."""

    reasoning: str = Field(description="One sentence explaining why this agent should act next")
    next: Literal["responder", "discovery", "builder", "assistant"] = Field(
        description="The next agent to call"
    )


class BuildOnlyRouting(BaseModel):
    """Routing decision without the assistant option."""

    reasoning: str = Field(description="One sentence explaining why this agent should act next")
    next: Literal["responder", "discovery", "builder"] = Field(description="The next agent to call")


def routing_schema(merge_ask_build: bool) -> Type[BaseModel]:
    return SupervisorRouting if merge_ask_build else BuildOnlyRouting


@dataclass
class SupervisorContext:
    messages: List[BaseMessage]
    workflow_json: Optional[SimpleWorkflow] = None
    coordination_log: List[CoordinationLogEntry] = field(default_factory=list)
    previous_summary: Optional[str] = None
    workflow_context: Optional[Dict[str, Any]] = None

    @classmethod
    def from_state(cls, state: WorkflowState) -> "SupervisorContext":
        return cls(
            messages=list(state.get("messages") or []),
            workflow_json=state.get("workflow_json"),
            coordination_log=list(state.get("coordination_log") or []),
            previous_summary=state.get("previous_summary"),
            workflow_context=state.get("workflow_context"),
        )


class SupervisorAgent:
    """Structured-output router over the conversation plus a context message."""

    def __init__(self, llm: BaseChatModel, merge_ask_build: bool = False):
        self.llm = llm
        self.merge_ask_build = merge_ask_build

    def build_context_message(self, context: SupervisorContext) -> Optional[HumanMessage]:
        """Collect previous summary, selected nodes, workflow and this turn's phases.

        Returns ``None`` when there is nothing to add.
        """
        parts: List[str] = []

        if context.previous_summary:
            parts.append(
                f"<previous_conversation_summary>\n{context.previous_summary}\n</previous_conversation_summary>"
            )

        selected = format_selected_nodes(context.workflow_context)
        if selected:
            parts.append(f"<selected_nodes>\n{selected}\n</selected_nodes>")

        workflow_summary = summarize_workflow(context.workflow_json)
        if workflow_summary:
            parts.append(f"<workflow_summary>\n{workflow_summary}\n</workflow_summary>")

        current_turn = get_current_turn_entries(context.coordination_log)
        if current_turn:
            parts.append(f"<completed_phases>\n{summarize_coordination_log(current_turn)}\n</completed_phases>")

        if not parts:
            return None
        return HumanMessage(content="\n\n".join(parts))

    async def ainvoke(self, context: SupervisorContext, config: Optional[RunnableConfig] = None) -> BaseModel:
        prompt = ChatPromptTemplate.from_messages(
            [
                SystemMessage(content=PromptBuilder.load_supervisor_prompt(merge_ask_build=self.merge_ask_build)),
                MessagesPlaceholder("messages"),
            ]
        )
        chain = prompt | self.llm.with_structured_output(
            routing_schema(self.merge_ask_build), name="routing_decision"
        )

        messages = list(context.messages)
        context_message = self.build_context_message(context)
        if context_message is not None:
            messages.append(context_message)

        routing = await chain.ainvoke({"messages": messages}, config)
        if routing is None:
            raise ModelInvocationError(
                "Supervisor model returned no routing decision",
                user_message="I couldn't decide how to handle that request. Please try rephrasing it.",
            )
        LOGGER.debug(f"Supervisor reasoning: {routing.reasoning}")
        return routing


def build_supervisor_node(*, supervisor: SupervisorAgent):
    async def supervisor_node(state: WorkflowState, config: Optional[RunnableConfig] = None) -> dict:
        log_node_entry(LOGGER, "supervisor", state)
        routing = await supervisor.ainvoke(SupervisorContext.from_state(state), config)
        LOGGER.info(f"Supervisor routed to: {routing.next}")
        return {"next_phase": routing.next}

    return supervisor_node


__all__ = [
    "SupervisorAgent",
    "SupervisorContext",
    "SupervisorRouting",
    "BuildOnlyRouting",
    "routing_schema",
    "build_supervisor_node",
]
