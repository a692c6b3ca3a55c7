"""Adapter from the assistant service's streaming response to stream chunks.

The service answers with a sequence of JSON frames separated by
``STREAM_SEPARATOR``. Each frame carries a session id and a list of messages;
every message type is degraded to something the editor chat can render.
"""

from __future__ import annotations

import codecs
import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

from workflowAgent.assistant.types import (
    AssistantContext,
    AssistantResult,
    AssistantSdkClient,
    SdkRequest,
    StreamWriter,
)
from workflowAgent.streaming.chunks import message_chunk, tool_chunk
from workflowAgent.utils.cancellation import CancellationToken
from workflowAgent.utils.error_handler import AssistantSdkError

LOGGER = logging.getLogger(__name__)

STREAM_SEPARATOR = "⧉⇋⇋➽⌑⧉§§\n"
SUMMARY_MAX_LENGTH = 200
TOOL_NAME = "assistant"


async def _next_chunk(iterator: AsyncIterator[bytes]) -> Optional[bytes]:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


def _summarize(text: str) -> str:
    if len(text) <= SUMMARY_MAX_LENGTH:
        return text
    return text[:SUMMARY_MAX_LENGTH] + "..."


class AssistantHandler:
    """Runs one assistant query and reports progress through a writer callback."""

    def __init__(self, client: AssistantSdkClient):
        self.client = client

    def build_sdk_payload(self, context: AssistantContext) -> SdkRequest:
        """Start a support chat for a new session, or continue an existing one."""
        if context.sdk_session_id:
            return SdkRequest(
                payload={"role": "user", "type": "message", "text": context.query},
                session_id=context.sdk_session_id,
            )

        payload: Dict[str, Any] = {
            "role": "user",
            "type": "init-support-chat",
            "user": {"firstName": context.user_name or "User"},
            "question": context.query,
        }
        if context.workflow_json is not None:
            payload["workflowContext"] = {"currentWorkflow": context.workflow_json}
        return SdkRequest(payload=payload)

    async def execute(
        self,
        context: AssistantContext,
        user_id: str,
        writer: StreamWriter,
        token: Optional[CancellationToken] = None,
    ) -> AssistantResult:
        """Query the assistant, writing progress and message chunks as they arrive.

        A ``completed`` "Done" chunk is always written, even when the call fails,
        so the consumer can close the progress row.

        Raises:
            AssistantSdkError: Non-2xx status, missing body or unparsable trailing data.
        """
        tool_call_id = f"assistant-{int(time.time() * 1000)}"
        writer(tool_chunk(tool_call_id, TOOL_NAME, "running", "Connecting to assistant..."))

        result = AssistantResult(sdk_session_id=context.sdk_session_id)
        texts: List[str] = []

        try:
            if token is not None and token.cancelled:
                LOGGER.info("Assistant query skipped: turn already cancelled")
                return result

            request = self.build_sdk_payload(context)
            async with self.client.chat(request, user_id) as response:
                if not response.ok:
                    raise AssistantSdkError(f"Assistant SDK returned HTTP {response.status_code}")
                if response.body is None:
                    raise AssistantSdkError("Assistant SDK response has no body")

                await self._consume_stream(response.body, tool_call_id, writer, result, texts, token)
        finally:
            writer(tool_chunk(tool_call_id, TOOL_NAME, "completed", "Done"))

        result.response_text = "\n".join(texts)
        result.summary = _summarize(result.response_text)
        LOGGER.info(
            f"Assistant answered: {len(result.response_text)} chars, "
            f"code_diff={result.has_code_diff}, suggestions={len(result.suggestion_ids)}"
        )
        return result

    async def _consume_stream(
        self,
        body: AsyncIterator[bytes],
        tool_call_id: str,
        writer: StreamWriter,
        result: AssistantResult,
        texts: List[str],
        token: Optional[CancellationToken],
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")()
        buffer = ""
        session_seen = False

        while True:
            if token is not None:
                raw = await token.guard(_next_chunk(body))
            else:
                raw = await _next_chunk(body)
            if raw is None:
                break

            buffer += decoder.decode(raw)
            frames = buffer.split(STREAM_SEPARATOR)
            buffer = frames.pop()

            for frame in frames:
                if not frame.strip():
                    continue
                data = json.loads(frame)
                if not session_seen and data.get("sessionId"):
                    result.sdk_session_id = data["sessionId"]
                    session_seen = True
                for message in data.get("messages", []):
                    self._handle_message(message, tool_call_id, writer, result, texts)

        buffer += decoder.decode(b"", final=True)
        if buffer.strip():
            try:
                data = json.loads(buffer)
            except json.JSONDecodeError as exc:
                raise AssistantSdkError(f"Assistant SDK error: {buffer.strip()[:200]}") from exc
            for message in data.get("messages", []):
                self._handle_message(message, tool_call_id, writer, result, texts)

    def _handle_message(
        self,
        message: Dict[str, Any],
        tool_call_id: str,
        writer: StreamWriter,
        result: AssistantResult,
        texts: List[str],
    ) -> None:
        msg_type = message.get("type")

        if msg_type in ("message", "error"):
            self._emit_text(message.get("text") or "", writer, texts)

        elif msg_type == "code-diff":
            description = message.get("description") or ""
            diff = message.get("codeDiff") or ""
            self._emit_text(f"{description}\n\n```diff\n{diff}\n```", writer, texts)
            result.has_code_diff = True
            if message.get("suggestionId"):
                result.suggestion_ids.append(message["suggestionId"])

        elif msg_type == "summary":
            self._emit_text(f"**{message.get('title', '')}**\n\n{message.get('content', '')}", writer, texts)

        elif msg_type == "agent-suggestion":
            self._emit_text(f"**{message.get('title', '')}**\n\n{message.get('text', '')}", writer, texts)
            if message.get("suggestionId"):
                result.suggestion_ids.append(message["suggestionId"])

        elif msg_type == "intermediate-step":
            writer(tool_chunk(tool_call_id, TOOL_NAME, "running", message.get("text") or "Working..."))

        elif msg_type == "event":
            LOGGER.debug(f"Assistant event: {message.get('eventName')}")

        else:
            LOGGER.debug(f"Ignoring assistant message of type {msg_type!r}")

    @staticmethod
    def _emit_text(text: str, writer: StreamWriter, texts: List[str]) -> None:
        if not text:
            return
        texts.append(text)
        writer(message_chunk(text))


__all__ = ["AssistantHandler", "STREAM_SEPARATOR"]
