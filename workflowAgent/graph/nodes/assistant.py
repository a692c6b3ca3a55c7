"""Assistant phase: forwards help and debugging questions to the assistant service."""

from __future__ import annotations

import logging
from typing import Optional

from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableConfig
from langgraph.config import get_stream_writer

from workflowAgent.assistant.handler import AssistantHandler
from workflowAgent.assistant.types import AssistantContext
from workflowAgent.graph.context import extract_user_request
from workflowAgent.graph.coordination_log import create_assistant_metadata, make_entry
from workflowAgent.graph.nodes.phase_executor import PhaseExecute, PhaseResult
from workflowAgent.graph.state import WorkflowState
from workflowAgent.streaming.chunks import StreamChunk
from workflowAgent.utils.cancellation import CancellationToken
from workflowAgent.utils.error_handler import PhaseExecutionError

LOGGER = logging.getLogger(__name__)


def get_configurable(config: Optional[RunnableConfig], key: str, default=None):
    return ((config or {}).get("configurable") or {}).get(key, default)


def build_assistant_execute(
    assistant_handler: Optional[AssistantHandler],
    *,
    timeout_seconds: Optional[float] = None,
) -> PhaseExecute:
    """Build the ``execute`` function for the assistant phase.

    The turn's ``cancellation_token`` and ``user_id`` are read from
    ``config["configurable"]``. When ``timeout_seconds`` is set the call runs under
    a child token that expires after that many seconds.
    """

    async def execute(state: WorkflowState, config: Optional[RunnableConfig] = None) -> PhaseResult:
        if assistant_handler is None:
            raise PhaseExecutionError("Assistant handler not configured")

        query = extract_user_request(state.get("messages") or [])
        user_id = get_configurable(config, "user_id", "unknown")
        parent_token: CancellationToken = get_configurable(config, "cancellation_token") or CancellationToken()
        token = parent_token.child(timeout=timeout_seconds)

        stream_writer = get_stream_writer()
        dispatched = 0

        def writer(chunk: StreamChunk) -> None:
            nonlocal dispatched
            dispatched += 1
            stream_writer(chunk)

        try:
            result = await assistant_handler.execute(
                AssistantContext(
                    query=query,
                    workflow_json=state.get("workflow_json"),
                    sdk_session_id=state.get("sdk_session_id"),
                ),
                user_id,
                writer,
                token,
            )
        finally:
            token.close()

        LOGGER.debug(
            f"Assistant handler completed: {len(result.response_text)} chars, "
            f"session={result.sdk_session_id}, chunks={dispatched}"
        )

        output = {"sdk_session_id": result.sdk_session_id}
        if result.response_text:
            output["messages"] = [AIMessage(content=result.response_text)]

        return PhaseResult(
            output=output,
            coordination_log=[
                make_entry(
                    "assistant",
                    "completed",
                    result.summary or "Assistant returned no text",
                    output=result.response_text,
                    metadata=create_assistant_metadata(
                        has_code_diff=result.has_code_diff,
                        suggestion_count=len(result.suggestion_ids),
                    ),
                )
            ],
        )

    return execute


__all__ = ["build_assistant_execute", "get_configurable"]
