"""Triage agent: a bounded tool-calling loop in front of the builder.

Each model response is either answered directly (no tool calls), or its tool
calls are dispatched by name:

- ``ask_assistant`` runs the assistant handler and shows its answer
- ``build_workflow`` runs the orchestrator graph and ends the loop

Tool progress is pushed from inside the tool (callback style) and pulled by
the loop through a ``StreamingBridge``, so it interleaves with the agent's own
text in one stream.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, ToolMessage

from workflowAgent.agents.payload import ChatPayload, ConversationEntry, conversation_entries
from workflowAgent.assistant.handler import AssistantHandler
from workflowAgent.assistant.types import AssistantContext
from workflowAgent.graph.context import format_selected_nodes, message_text, summarize_workflow
from workflowAgent.streaming.bridge import StreamingBridge
from workflowAgent.streaming.chunks import StreamChunk, StreamOutput, message_chunk, tool_chunk, wrap_chunk
from workflowAgent.streaming.run import OutcomeStream
from workflowAgent.tools.triage_tools import TRIAGE_TOOLS
from workflowAgent.utils.cancellation import CancellationToken
from workflowAgent.utils.logging_utils import log_tool_call, log_tool_result
from workflowAgent.utils.prompt_builder import PromptBuilder

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10

BuildWorkflow = Callable[[ChatPayload, str, CancellationToken], AsyncIterator[StreamOutput]]


@dataclass
class ToolResult:
    content: str
    end_loop: bool = False
    handled_response: bool = False


@dataclass
class AgentOutcome:
    sdk_session_id: Optional[str] = None
    assistant_summary: Optional[str] = None
    build_executed: Optional[bool] = None


@dataclass
class TriageParams:
    payload: ChatPayload
    user_id: str
    token: Optional[CancellationToken] = None
    sdk_session_id: Optional[str] = None
    conversation_history: List[ConversationEntry] = field(default_factory=list)


class TriageRun(OutcomeStream[StreamOutput, AgentOutcome]):
    """Stream of one triage turn; ``outcome`` is set once it is drained."""


@dataclass
class _LoopState:
    sdk_session_id: Optional[str] = None
    assistant_summary: Optional[str] = None
    build_executed: Optional[bool] = None

    def outcome(self) -> AgentOutcome:
        return AgentOutcome(
            sdk_session_id=self.sdk_session_id,
            assistant_summary=self.assistant_summary,
            build_executed=self.build_executed,
        )


def build_triage_prompt(
    history: Optional[List[ConversationEntry]] = None,
    workflow_context: Optional[Dict[str, Any]] = None,
) -> str:
    current = (workflow_context or {}).get("current_workflow")
    return PromptBuilder.load_triage_prompt(
        history=conversation_entries(history),
        workflow_summary=summarize_workflow(current) if current else "",
        selected_nodes=format_selected_nodes(workflow_context),
    )


class TriageAgent:
    """Tool-calling loop bounded by ``max_iterations`` model calls."""

    def __init__(
        self,
        llm: BaseChatModel,
        assistant_handler: AssistantHandler,
        build_workflow: BuildWorkflow,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        logger: Optional[logging.Logger] = None,
        log_max_length: int = 500,
    ):
        self.llm = llm
        self.assistant_handler = assistant_handler
        self.build_workflow = build_workflow
        self.max_iterations = max_iterations
        self.logger = logger or LOGGER
        self.log_max_length = log_max_length

    def run(self, params: TriageParams) -> TriageRun:
        return TriageRun(self._run(params), AgentOutcome)

    async def _run(self, params: TriageParams) -> AsyncIterator[Any]:
        try:
            llm_with_tools = self.llm.bind_tools(TRIAGE_TOOLS)
        except NotImplementedError as exc:
            raise TypeError("Model does not support tool calling (bind_tools)") from exc

        token = params.token or CancellationToken()
        messages: List[BaseMessage] = [
            SystemMessage(content=build_triage_prompt(params.conversation_history, params.payload.workflow_context)),
            HumanMessage(content=params.payload.message),
        ]
        state = _LoopState(sdk_session_id=params.sdk_session_id)
        response_handled = False

        for iteration in range(1, self.max_iterations + 1):
            if token.cancelled:
                self.logger.info(f"Triage stopped before iteration {iteration}: {token.reason}")
                yield state.outcome()
                return

            response = await token.guard(llm_with_tools.ainvoke(messages))
            messages.append(response)

            tool_calls = list(getattr(response, "tool_calls", None) or [])
            text = message_text(response)

            if text and (tool_calls or not response_handled):
                yield wrap_chunk(message_chunk(text))

            if not tool_calls:
                self.logger.debug(f"No tool call, exiting loop (iteration {iteration})")
                yield state.outcome()
                return

            for call in tool_calls:
                name = call.get("name", "")
                args = call.get("args") or {}
                log_tool_call(self.logger, name, args, iteration)

                result: Optional[ToolResult] = None
                async for item in self._execute_tool_with_streaming(name, args, params, token, state):
                    if isinstance(item, ToolResult):
                        result = item
                    else:
                        yield item

                if result.handled_response:
                    response_handled = True
                log_tool_result(self.logger, name, result.content, max_length=self.log_max_length)

                messages.append(ToolMessage(content=result.content, tool_call_id=call.get("id") or f"tc-{iteration}"))

                if result.end_loop:
                    yield state.outcome()
                    return

        self.logger.warning(f"Max iterations reached ({self.max_iterations}), returning partial outcome")
        yield state.outcome()

    async def _execute_tool_with_streaming(
        self,
        name: str,
        args: Dict[str, Any],
        params: TriageParams,
        token: CancellationToken,
        state: _LoopState,
    ) -> AsyncIterator[Any]:
        """Yield every chunk the tool enqueues, then its ``ToolResult``."""
        bridge: StreamingBridge[StreamOutput, ToolResult] = StreamingBridge()
        async for output in bridge.stream(lambda enqueue: self._execute_tool(name, args, params, token, state, enqueue)):
            yield output
        yield bridge.result

    async def _execute_tool(
        self,
        name: str,
        args: Dict[str, Any],
        params: TriageParams,
        token: CancellationToken,
        state: _LoopState,
        enqueue: Callable[[StreamOutput], None],
    ) -> ToolResult:
        if name == "ask_assistant":
            return await self._ask_assistant(args, params, token, state, enqueue)
        if name == "build_workflow":
            return await self._build_workflow(params, token, state, enqueue)

        self.logger.warning(f"Unknown tool call: {name}")
        return ToolResult(content=f"Unknown tool: {name}")

    async def _ask_assistant(
        self,
        args: Dict[str, Any],
        params: TriageParams,
        token: CancellationToken,
        state: _LoopState,
        enqueue: Callable[[StreamOutput], None],
    ) -> ToolResult:
        tool_call_id = f"triage-ask-assistant-{int(time.time() * 1000)}"
        enqueue(wrap_chunk(tool_chunk(tool_call_id, "assistant", "running", "Asking assistant...")))

        # The answer text is bundled with the completed chunk below, so only
        # progress rows are forwarded from the handler.
        def progress_writer(chunk: StreamChunk) -> None:
            if chunk["type"] == "tool":
                enqueue(wrap_chunk(chunk))

        result = await self.assistant_handler.execute(
            AssistantContext(
                query=args.get("query") or params.payload.message,
                user_name=params.payload.user_name,
                workflow_json=params.payload.current_workflow,
                sdk_session_id=state.sdk_session_id,
            ),
            params.user_id,
            progress_writer,
            token,
        )

        chunks: List[StreamChunk] = [tool_chunk(tool_call_id, "assistant", "completed")]
        if result.response_text:
            chunks.append(message_chunk(result.response_text))
        enqueue({"messages": chunks})

        state.sdk_session_id = result.sdk_session_id
        state.assistant_summary = result.summary
        return ToolResult(content=result.summary, handled_response=True)

    async def _build_workflow(
        self,
        params: TriageParams,
        token: CancellationToken,
        state: _LoopState,
        enqueue: Callable[[StreamOutput], None],
    ) -> ToolResult:
        payload = params.payload
        if state.assistant_summary:
            payload = payload.with_message(f"[Diagnosis]: {state.assistant_summary}\n\n{payload.message}")

        async for output in self.build_workflow(payload, params.user_id, token):
            enqueue(output)

        state.build_executed = True
        return ToolResult(content="Workflow built.", end_loop=True, handled_response=True)


__all__ = [
    "TriageAgent",
    "TriageParams",
    "TriageRun",
    "ToolResult",
    "AgentOutcome",
    "build_triage_prompt",
    "DEFAULT_MAX_ITERATIONS",
]
