"""Streaming primitives and chunk shapes."""

from .bridge import StreamingBridge
from .chunks import (
    AgentMessageChunk,
    StreamChunk,
    StreamOutput,
    ToolProgressChunk,
    message_chunk,
    tool_chunk,
    wrap_chunk,
)

__all__ = [
    "StreamingBridge",
    "AgentMessageChunk",
    "ToolProgressChunk",
    "StreamChunk",
    "StreamOutput",
    "message_chunk",
    "tool_chunk",
    "wrap_chunk",
]
