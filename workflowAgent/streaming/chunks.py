"""Stream chunk shapes delivered to the caller.

The camelCase keys (``toolCallId``, ``customDisplayTitle``) are part of the wire
format consumed by the editor UI and are kept as-is.
"""

from __future__ import annotations

from typing import List, Literal, Optional, TypedDict, Union

from typing_extensions import NotRequired


class AgentMessageChunk(TypedDict):
    """User-facing text authored by an agent."""

    type: Literal["message"]
    role: Literal["assistant", "user"]
    text: str


class ToolProgressChunk(TypedDict):
    """Progress row for a long-running operation.

    A ``running`` chunk and its matching ``completed`` chunk share ``toolCallId``
    so the consumer can update the row instead of adding a new one.
    """

    type: Literal["tool"]
    toolCallId: str
    toolName: str
    status: Literal["running", "completed"]
    customDisplayTitle: NotRequired[str]


StreamChunk = Union[AgentMessageChunk, ToolProgressChunk]


class StreamOutput(TypedDict):
    messages: List[StreamChunk]


def message_chunk(text: str, role: Literal["assistant", "user"] = "assistant") -> AgentMessageChunk:
    return {"type": "message", "role": role, "text": text}


def tool_chunk(
    tool_call_id: str,
    tool_name: str,
    status: Literal["running", "completed"],
    display_title: Optional[str] = None,
) -> ToolProgressChunk:
    chunk: ToolProgressChunk = {
        "type": "tool",
        "toolCallId": tool_call_id,
        "toolName": tool_name,
        "status": status,
    }
    if display_title is not None:
        chunk["customDisplayTitle"] = display_title
    return chunk


def wrap_chunk(chunk: StreamChunk) -> StreamOutput:
    """Wrap a single chunk into a StreamOutput envelope."""
    return {"messages": [chunk]}
