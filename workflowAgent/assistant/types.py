"""Types for the knowledge-assistant integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict, List, Optional, Protocol

from workflowAgent.graph.state import SimpleWorkflow
from workflowAgent.streaming.chunks import StreamChunk

StreamWriter = Callable[[StreamChunk], None]


@dataclass
class AssistantContext:
    """What the assistant needs to answer one query."""

    query: str
    user_name: Optional[str] = None
    workflow_json: Optional[SimpleWorkflow] = None
    sdk_session_id: Optional[str] = None


@dataclass
class AssistantResult:
    response_text: str = ""
    summary: str = ""
    sdk_session_id: Optional[str] = None
    has_code_diff: bool = False
    suggestion_ids: List[str] = field(default_factory=list)


@dataclass
class SdkRequest:
    """Request body for the assistant service plus the session to continue, if any."""

    payload: Dict[str, Any]
    session_id: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"payload": self.payload}
        if self.session_id:
            body["sessionId"] = self.session_id
        return body


@dataclass
class SdkResponse:
    """Status plus the raw streaming body (``None`` when the service sent no body)."""

    status_code: int
    body: Optional[AsyncIterator[bytes]]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class AssistantSdkClient(Protocol):
    def chat(self, request: SdkRequest, user_id: str) -> AsyncContextManager[SdkResponse]:
        """Open a streaming chat request; the body is readable inside the context."""
        ...


__all__ = [
    "StreamWriter",
    "AssistantContext",
    "AssistantResult",
    "SdkRequest",
    "SdkResponse",
    "AssistantSdkClient",
]
