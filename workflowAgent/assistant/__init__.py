"""Knowledge-assistant integration (help, debugging and how-to questions)."""

from .client import HttpxAssistantClient
from .handler import STREAM_SEPARATOR, AssistantHandler
from .types import (
    AssistantContext,
    AssistantResult,
    AssistantSdkClient,
    SdkRequest,
    SdkResponse,
    StreamWriter,
)

__all__ = [
    "AssistantHandler",
    "HttpxAssistantClient",
    "STREAM_SEPARATOR",
    "AssistantContext",
    "AssistantResult",
    "AssistantSdkClient",
    "SdkRequest",
    "SdkResponse",
    "StreamWriter",
]
