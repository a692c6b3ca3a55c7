"""Preprocessing nodes that run before any phase.

``check_state`` classifies the incoming state into one action; the handler
nodes fix the state up and loop back to ``check_state`` until it says
``continue``. Every handler leaves the state in a shape that no longer triggers
its own action, so the loop always terminates.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    RemoveMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.messages.utils import count_tokens_approximately
from langchain_core.runnables import RunnableConfig
from langgraph.graph.message import REMOVE_ALL_MESSAGES

from workflowAgent.graph.context import is_user_message, last_user_message, message_text
from workflowAgent.graph.coordination_log import has_error_in_log
from workflowAgent.graph.state import CLEAR_COORDINATION_LOG, WorkflowState, empty_workflow
from workflowAgent.utils.logging_utils import log_node_entry, log_node_exit
from workflowAgent.utils.prompt_builder import PromptBuilder

LOGGER = logging.getLogger(__name__)

CLEAR_COMMAND = "/clear"
COMPACT_COMMAND = "/compact"
DEFAULT_WORKFLOW_NAME = "My workflow"
MAX_WORKFLOW_NAME_LENGTH = 60


# ========== Classification ==========

def find_dangling_tool_calls(messages: List[BaseMessage]) -> List[AIMessage]:
    """AI messages whose tool calls never received a matching tool message."""
    answered = {m.tool_call_id for m in messages if isinstance(m, ToolMessage)}
    dangling = []
    for message in messages:
        if isinstance(message, AIMessage) and message.tool_calls:
            if any(call.get("id") not in answered for call in message.tool_calls):
                dangling.append(message)
    return dangling


def determine_state_action(state: WorkflowState, auto_compact_threshold: int) -> str:
    """Classify the state into the single preprocessing action to run next.

    Checks, in order: ``/clear``, ``/compact``, dangling tool calls, history over
    the token threshold, an error entry left by an earlier turn, naming an unnamed
    workflow on the first message. Otherwise ``continue``.
    """
    messages = list(state.get("messages") or [])
    last_user = last_user_message(messages)
    last_text = message_text(last_user).strip() if last_user else ""

    if last_text == CLEAR_COMMAND:
        return "delete_messages"

    if last_text == COMPACT_COMMAND:
        return "compact_messages"

    if find_dangling_tool_calls(messages):
        return "cleanup_dangling"

    # A single oversized message can't be compacted any further
    if len(messages) > 1 and count_tokens_approximately(messages) > auto_compact_threshold:
        return "auto_compact_messages"

    # check_state runs before any phase of the turn, so every error entry here is
    # left over from an earlier turn (including one cancelled before its responder)
    if has_error_in_log(state.get("coordination_log") or []):
        return "clear_error_state"

    workflow = state.get("workflow_json") or {}
    user_messages = [m for m in messages if is_user_message(m)]
    if not workflow.get("name") and not workflow.get("nodes") and len(user_messages) == 1:
        return "create_workflow_name"

    return "continue"


def build_check_state_node(*, auto_compact_threshold: int):
    async def check_state_node(state: WorkflowState) -> dict:
        log_node_entry(LOGGER, "check_state", state)
        action = determine_state_action(state, auto_compact_threshold)
        LOGGER.info(f"Preprocessing action: {action}")
        return {"next_phase": action}

    return check_state_node


# ========== Handlers ==========

async def cleanup_dangling_node(state: WorkflowState) -> dict:
    """Drop AI messages left with unanswered tool calls (e.g. after a cancelled turn)."""
    dangling = find_dangling_tool_calls(list(state.get("messages") or []))
    LOGGER.warning(f"Removing {len(dangling)} message(s) with dangling tool calls")
    return {"messages": [RemoveMessage(id=message.id) for message in dangling]}


async def delete_messages_node(state: WorkflowState) -> dict:
    """Handle ``/clear``: forget the conversation, keep the workflow document."""
    updates = {
        "messages": [RemoveMessage(id=REMOVE_ALL_MESSAGES)],
        "coordination_log": [CLEAR_COORDINATION_LOG],
        "previous_summary": None,
        "discovery_context": None,
        "workflow_operations": None,
        "sdk_session_id": None,
        "plan_output": None,
        "plan_decision": None,
        "plan_feedback": None,
        "plan_previous": None,
    }
    log_node_exit(LOGGER, "delete_messages", updates)
    return updates


async def clear_error_state_node(state: WorkflowState) -> dict:
    """Remove error entries left over from a previous turn so routing starts clean."""
    log = list(state.get("coordination_log") or [])
    kept = [entry for entry in log if entry["status"] != "error"]
    LOGGER.info(f"Clearing {len(log) - len(kept)} stale error entr(ies) from the coordination log")
    return {"coordination_log": [CLEAR_COORDINATION_LOG, *kept]}


def _render_transcript(messages: List[BaseMessage]) -> str:
    lines = []
    for message in messages:
        if isinstance(message, (SystemMessage, ToolMessage)):
            continue
        text = message_text(message).strip()
        if not text:
            continue
        role = "User" if isinstance(message, HumanMessage) else "Assistant"
        lines.append(f"{role}: {text}")
    return "\n".join(lines)


def build_compact_messages_node(*, llm: BaseChatModel):
    """Build the compaction node shared by ``/compact`` and auto-compaction.

    Manual compaction removes every message (the responder acknowledges it).
    Auto-compaction keeps the latest user message so the turn can continue.
    """

    async def compact_messages_node(state: WorkflowState, config: Optional[RunnableConfig] = None) -> dict:
        log_node_entry(LOGGER, "compact_messages", state)
        messages = list(state.get("messages") or [])
        last_user = last_user_message(messages)
        is_auto = last_user is None or message_text(last_user).strip() != COMPACT_COMMAND

        history = [m for m in messages if m is not last_user]

        previous_summary = state.get("previous_summary") or ""
        transcript = _render_transcript(history)
        if previous_summary:
            transcript = f"Earlier summary:\n{previous_summary}\n\nConversation:\n{transcript}"

        response = await llm.ainvoke(
            [SystemMessage(content=PromptBuilder.load_compact_prompt()), HumanMessage(content=transcript)],
            config,
        )
        summary = message_text(response).strip()
        LOGGER.info(f"Compacted {len(history)} message(s) into a {len(summary)}-char summary (auto={is_auto})")

        kept: List[BaseMessage] = []
        if is_auto and last_user is not None:
            kept = [HumanMessage(content=last_user.content, id=last_user.id)]

        updates = {
            "messages": [RemoveMessage(id=REMOVE_ALL_MESSAGES), *kept],
            "previous_summary": summary,
        }
        log_node_exit(LOGGER, "compact_messages", updates)
        return updates

    return compact_messages_node


def fallback_workflow_name(text: str) -> str:
    words = text.split()
    if not words:
        return DEFAULT_WORKFLOW_NAME
    name = " ".join(words[:6])
    if len(name) > MAX_WORKFLOW_NAME_LENGTH:
        name = name[:MAX_WORKFLOW_NAME_LENGTH].rstrip()
    return name[0].upper() + name[1:]


def build_create_workflow_name_node(*, llm: BaseChatModel):
    """Build the node that names a new workflow from the first user message.

    Falls back to a name derived from the message when the model fails, so the
    workflow is always named after this node and ``check_state`` moves on.
    """

    async def create_workflow_name_node(state: WorkflowState, config: Optional[RunnableConfig] = None) -> dict:
        messages = list(state.get("messages") or [])
        last_user = last_user_message(messages)
        request = message_text(last_user).strip() if last_user else ""

        try:
            response = await llm.ainvoke(
                [SystemMessage(content=PromptBuilder.load_workflow_name_prompt()), HumanMessage(content=request)],
                config,
            )
            name = message_text(response).strip().strip("\"'").strip()
        except Exception as exc:
            LOGGER.warning(f"Workflow naming failed, using fallback: {exc}")
            name = ""

        if not name:
            name = fallback_workflow_name(request)
        name = name[:MAX_WORKFLOW_NAME_LENGTH]

        LOGGER.info(f"Named workflow: {name}")
        workflow = state.get("workflow_json") or empty_workflow()
        return {"workflow_json": {**workflow, "name": name}}

    return create_workflow_name_node


__all__ = [
    "determine_state_action",
    "find_dangling_tool_calls",
    "fallback_workflow_name",
    "build_check_state_node",
    "cleanup_dangling_node",
    "delete_messages_node",
    "clear_error_state_node",
    "build_compact_messages_node",
    "build_create_workflow_name_node",
]
