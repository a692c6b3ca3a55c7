"""Responder node: the only node that writes the final user-facing reply."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from workflowAgent.graph.context import message_text, summarize_workflow
from workflowAgent.graph.coordination_log import (
    create_responder_metadata,
    find_last_entry,
    get_current_turn_entries,
    get_last_completed_phase,
    has_builder_phase_in_log,
    has_error_in_log,
    make_entry,
    now_ms,
    summarize_coordination_log,
)
from workflowAgent.graph.state import WorkflowState
from workflowAgent.utils.logging_utils import log_node_entry, log_node_exit
from workflowAgent.utils.prompt_builder import PromptBuilder

LOGGER = logging.getLogger(__name__)

GenerationCallback = Callable[[WorkflowState], Union[None, Awaitable[None]]]

CLEARED_MESSAGE = "Conversation cleared. What would you like to build next?"
COMPACTED_MESSAGE = "Conversation compacted. I kept a summary of what we discussed, so we can continue from here."


def build_responder_context(state: WorkflowState) -> str:
    sections = []

    turn_summary = summarize_coordination_log(get_current_turn_entries(state.get("coordination_log") or []))
    if turn_summary:
        sections.append(f"<completed_phases>\n{turn_summary}\n</completed_phases>")

    discovery = state.get("discovery_context") or {}
    if discovery.get("summary"):
        sections.append(f"<discovery>\n{discovery['summary']}\n</discovery>")

    workflow_summary = summarize_workflow(state.get("workflow_json"))
    if workflow_summary:
        sections.append(f"<workflow_summary>\n{workflow_summary}\n</workflow_summary>")

    if state.get("plan_output"):
        sections.append(f"<plan>\n{state['plan_output']}\n</plan>")

    if state.get("previous_summary"):
        sections.append(
            f"<previous_conversation_summary>\n{state['previous_summary']}\n</previous_conversation_summary>"
        )

    return "\n\n".join(sections)


def build_responder_node(*, llm: BaseChatModel, on_generation_success: Optional[GenerationCallback] = None):
    """Build the responder node.

    Args:
        llm: Responder model
        on_generation_success: Called after a turn that built something without errors
    """

    async def responder_node(state: WorkflowState, config: Optional[RunnableConfig] = None) -> dict:
        log_node_entry(LOGGER, "responder", state)
        started_at = now_ms()
        log = list(state.get("coordination_log") or [])

        # Forward the assistant's answer as-is when it ran last this turn. An empty
        # answer falls through to normal synthesis.
        if get_last_completed_phase(log) == "assistant":
            assistant_entry = find_last_entry(log, "assistant")
            if assistant_entry and assistant_entry.get("output"):
                LOGGER.info(f"Forwarding assistant response ({len(assistant_entry['output'])} chars)")
                return {
                    "coordination_log": [
                        make_entry(
                            "responder",
                            "completed",
                            "Assistant response forwarded",
                            metadata=create_responder_metadata(response_length=0),
                        )
                    ]
                }

        messages = list(state.get("messages") or [])
        if not messages:
            text = COMPACTED_MESSAGE if state.get("previous_summary") else CLEARED_MESSAGE
            response = AIMessage(content=text)
        else:
            prompt = [SystemMessage(content=PromptBuilder.load_responder_prompt()), *messages]
            context = build_responder_context(state)
            if context:
                prompt.append(HumanMessage(content=context, name="context"))
            response = await llm.ainvoke(prompt, config)

        text = message_text(response)
        updates = {
            "messages": [response],
            "coordination_log": [
                make_entry(
                    "responder",
                    "in_progress",
                    "Starting responder",
                    timestamp=started_at,
                    metadata=create_responder_metadata(response_length=0),
                ),
                make_entry(
                    "responder",
                    "completed",
                    f"Generated response ({len(text)} chars)",
                    metadata=create_responder_metadata(response_length=len(text)),
                ),
            ],
        }

        turn_entries = get_current_turn_entries(log)
        if on_generation_success is not None and not has_error_in_log(turn_entries) and has_builder_phase_in_log(log):
            await _notify_generation_success(on_generation_success, state)

        log_node_exit(LOGGER, "responder", updates)
        return updates

    return responder_node


async def _notify_generation_success(callback: GenerationCallback, state: WorkflowState) -> Any:
    try:
        result = callback(state)
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        LOGGER.warning(f"on_generation_success callback failed: {exc}")


__all__ = ["build_responder_node", "build_responder_context", "CLEARED_MESSAGE", "COMPACTED_MESSAGE"]
