"""Application assembly for the workflow builder.

This module builds the turn runtime by:
1. Loading settings (and configuring tracing and file logging)
2. Building one model per stage
3. Wiring the knowledge assistant (when configured)
4. Building the orchestrator graph with a checkpointer
5. Choosing the turn entry point (triage loop or graph)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from langchain_core.messages import AIMessage, HumanMessage
from langchain_core.runnables import RunnableConfig

from workflowAgent.agents.payload import ChatPayload, ConversationEntry
from workflowAgent.agents.triage import AgentOutcome, TriageAgent, TriageParams
from workflowAgent.assistant import AssistantHandler, HttpxAssistantClient
from workflowAgent.config import Settings, get_settings
from workflowAgent.graph.builder import build_orchestrator_graph
from workflowAgent.graph.context import message_text
from workflowAgent.graph.coordination_log import find_last_entry, get_current_turn_entries, get_last_turn_entries
from workflowAgent.graph.nodes.responder import GenerationCallback
from workflowAgent.persistence import build_checkpointer
from workflowAgent.phases.base import BasePhaseSubgraph
from workflowAgent.streaming.chunks import StreamOutput, message_chunk, wrap_chunk
from workflowAgent.streaming.run import OutcomeStream
from workflowAgent.telemetry import configure_tracing
from workflowAgent.utils.cancellation import CancellationToken
from workflowAgent.utils.logging_utils import log_user_message, setup_logging

from .model_resolver import StageLLMs, build_stage_llms

LOGGER = logging.getLogger(__name__)

GRAPH_RECURSION_LIMIT = 50

# Nodes whose AI messages are shown to the user. The assistant phase streams
# its own text through the custom stream writer.
USER_FACING_NODES = ("responder",)


@dataclass
class TurnInput:
    """Everything one turn needs besides the checkpointed thread state."""

    payload: ChatPayload
    user_id: str
    thread_id: str
    sdk_session_id: Optional[str] = None
    conversation_history: List[ConversationEntry] = field(default_factory=list)


class TurnRun(OutcomeStream[StreamOutput, AgentOutcome]):
    """Stream of one turn; ``outcome`` is set once it is drained."""


class WorkflowBuilderApp:
    """Runs turns against the compiled graph, optionally behind the triage loop."""

    def __init__(
        self,
        graph: Any,
        *,
        settings: Settings,
        stage_llms: StageLLMs,
        assistant_handler: Optional[AssistantHandler] = None,
    ):
        self.graph = graph
        self.settings = settings
        self.stage_llms = stage_llms
        self.assistant_handler = assistant_handler

    @property
    def triage_enabled(self) -> bool:
        return self.settings.orchestration.enable_triage and self.assistant_handler is not None

    def run(self, turn_input: TurnInput, *, token: Optional[CancellationToken] = None) -> TurnRun:
        token = token or CancellationToken()
        log_user_message(LOGGER, turn_input.payload.message, self.settings.observability.log_prompt_max_length)
        if self.triage_enabled:
            return TurnRun(self._run_triage(turn_input, token), AgentOutcome)
        return TurnRun(self._run_graph(turn_input, token), AgentOutcome)

    # ========== Entry points ==========

    async def _run_triage(self, turn_input: TurnInput, token: CancellationToken) -> AsyncIterator[Any]:
        sdk_session_id = turn_input.sdk_session_id
        if sdk_session_id is None:
            state = await self.graph.aget_state(self._config(turn_input.thread_id, turn_input.user_id, token))
            sdk_session_id = state.values.get("sdk_session_id")

        async def build_workflow(
            payload: ChatPayload, user_id: str, build_token: CancellationToken
        ) -> AsyncIterator[StreamOutput]:
            async for output in self._stream_graph(payload, user_id, turn_input.thread_id, build_token):
                yield output

        agent = TriageAgent(
            self.stage_llms.triage,
            self.assistant_handler,
            build_workflow,
            max_iterations=self.settings.orchestration.max_triage_iterations,
            log_max_length=self.settings.observability.log_prompt_max_length,
        )
        run = agent.run(
            TriageParams(
                payload=turn_input.payload,
                user_id=turn_input.user_id,
                token=token,
                sdk_session_id=sdk_session_id,
                conversation_history=turn_input.conversation_history,
            )
        )
        async for output in run:
            yield output
        yield run.outcome or AgentOutcome(sdk_session_id=sdk_session_id)

    async def _run_graph(self, turn_input: TurnInput, token: CancellationToken) -> AsyncIterator[Any]:
        if token.cancelled:
            LOGGER.info(f"Turn skipped: {token.reason}")
            yield AgentOutcome(sdk_session_id=turn_input.sdk_session_id)
            return

        async for output in self._stream_graph(turn_input.payload, turn_input.user_id, turn_input.thread_id, token):
            yield output

        state = await self.graph.aget_state(self._config(turn_input.thread_id, turn_input.user_id, token))
        yield self._outcome_from_state(state.values, paused=bool(state.next))

    # ========== Graph streaming ==========

    def _config(self, thread_id: str, user_id: str, token: CancellationToken) -> RunnableConfig:
        return {
            "configurable": {"thread_id": thread_id, "user_id": user_id, "cancellation_token": token},
            "recursion_limit": GRAPH_RECURSION_LIMIT,
        }

    @staticmethod
    def build_graph_input(payload: ChatPayload) -> Dict[str, Any]:
        graph_input: Dict[str, Any] = {
            "messages": [HumanMessage(content=payload.message)],
            "workflow_context": payload.workflow_context,
            "mode": payload.mode,
            "plan_decision": payload.plan_decision,
            "plan_feedback": payload.plan_feedback,
        }
        # The editor's copy of the workflow wins over the checkpointed one
        if payload.current_workflow is not None:
            graph_input["workflow_json"] = payload.current_workflow
        return graph_input

    async def _stream_graph(
        self,
        payload: ChatPayload,
        user_id: str,
        thread_id: str,
        token: CancellationToken,
    ) -> AsyncIterator[StreamOutput]:
        config = self._config(thread_id, user_id, token)
        stream = self.graph.astream(self.build_graph_input(payload), config, stream_mode=["custom", "updates"])
        try:
            while True:
                item = await token.guard(_next_item(stream))
                if item is None:
                    break
                mode, chunk = item

                if mode == "custom":
                    yield wrap_chunk(chunk)
                    continue

                for output in _message_outputs(chunk):
                    yield output
        finally:
            await stream.aclose()

    @staticmethod
    def _outcome_from_state(values: Dict[str, Any], paused: bool = False) -> AgentOutcome:
        """Outcome of the turn that just ran.

        A turn paused by an interrupt has no responder entry yet, so its facts are
        the entries after the last finished turn.
        """
        log = values.get("coordination_log") or []
        turn_entries = get_current_turn_entries(log) if paused else get_last_turn_entries(log)
        assistant_entry = find_last_entry(turn_entries, "assistant")
        return AgentOutcome(
            sdk_session_id=values.get("sdk_session_id"),
            assistant_summary=assistant_entry["summary"] if assistant_entry else None,
            build_executed=True if find_last_entry(turn_entries, "builder") else None,
        )


async def _next_item(stream: AsyncIterator[Any]) -> Optional[Any]:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return None


def _message_outputs(update: Dict[str, Any]) -> List[StreamOutput]:
    """Turn AI messages from user-facing node updates into message chunks."""
    outputs: List[StreamOutput] = []
    for node in USER_FACING_NODES:
        node_update = (update or {}).get(node) or {}
        for message in node_update.get("messages") or []:
            if isinstance(message, AIMessage):
                text = message_text(message)
                if text:
                    outputs.append(wrap_chunk(message_chunk(text)))
    return outputs


def build_workflow_app(
    settings: Optional[Settings] = None,
    *,
    discovery: BasePhaseSubgraph,
    builder: BasePhaseSubgraph,
    stage_llms: Optional[StageLLMs] = None,
    assistant_handler: Optional[AssistantHandler] = None,
    checkpointer=None,
    on_generation_success: Optional[GenerationCallback] = None,
) -> WorkflowBuilderApp:
    """Build the workflow builder application.

    Args:
        settings: Application settings (defaults to the cached .env settings)
        discovery: Discovery specialist
        builder: Builder specialist
        stage_llms: Models per stage (built from settings if None)
        assistant_handler: Knowledge assistant (built from ASSISTANT_BASE_URL if None)
        checkpointer: Thread persistence (in-memory if None)
        on_generation_success: Called by the responder after a successful build turn

    Returns:
        WorkflowBuilderApp ready to run turns
    """
    settings = settings or get_settings()

    # ========== Step 0: Observability ==========
    if settings.observability.log_to_file:
        setup_logging(log_dir=settings.observability.log_dir)
    configure_tracing(settings.observability)

    # ========== Step 1: Models ==========
    stage_llms = stage_llms or build_stage_llms(settings)

    # ========== Step 2: Assistant ==========
    if assistant_handler is None and settings.assistant.base_url:
        client = HttpxAssistantClient(settings.assistant.base_url, api_key=settings.assistant.api_key)
        assistant_handler = AssistantHandler(client)
        LOGGER.info(f"Assistant wired: {settings.assistant.base_url}")

    # ========== Step 3: Graph ==========
    graph = build_orchestrator_graph(
        stage_llms=stage_llms,
        discovery=discovery,
        builder=builder,
        orchestration=settings.orchestration,
        assistant_handler=assistant_handler,
        assistant_timeout=settings.assistant.timeout_seconds,
        checkpointer=checkpointer if checkpointer is not None else build_checkpointer(),
        on_generation_success=on_generation_success,
    )

    app = WorkflowBuilderApp(
        graph,
        settings=settings,
        stage_llms=stage_llms,
        assistant_handler=assistant_handler,
    )
    LOGGER.info(f"Workflow builder ready (entry={'triage' if app.triage_enabled else 'graph'})")
    return app


__all__ = ["TurnInput", "TurnRun", "WorkflowBuilderApp", "build_workflow_app", "GRAPH_RECURSION_LIMIT"]
