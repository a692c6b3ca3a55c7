"""Fakes shared by the compiled-graph tests.

``ScriptedModel`` stands in for every stage model: the supervisor's structured
output is taken from a script, every other call answers with fixed text.
"""

from typing import Any, Dict, List, Optional

import pytest
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda
from langgraph.checkpoint.memory import MemorySaver
from langgraph.types import interrupt

from workflowAgent.assistant.types import AssistantResult
from workflowAgent.config.settings import AssistantSettings, ModelRoutingSettings, OrchestrationSettings, Settings
from workflowAgent.graph.context import extract_user_request
from workflowAgent.graph.coordination_log import make_entry
from workflowAgent.phases.base import BasePhaseSubgraph
from workflowAgent.runtime.model_resolver import StageLLMs
from workflowAgent.streaming.chunks import message_chunk, tool_chunk
from workflowAgent.utils.error_handler import TurnCancelledError


class ScriptedModel:
    def __init__(self, routes=(), reply="All set. Your workflow is ready.", cancelled_replies=0):
        self.routes = list(routes)
        self.reply = reply
        self.cancelled_replies = cancelled_replies
        self.prompts: List[list] = []

    def with_structured_output(self, schema, name=None):
        def route(prompt_value):
            return schema(reasoning="scripted", next=self.routes.pop(0))

        return RunnableLambda(route)

    async def ainvoke(self, messages, config=None):
        self.prompts.append(list(messages))
        system = messages[0].content if messages else ""
        if "descriptive name" in system:
            return AIMessage(content="Slack Digest")
        if self.cancelled_replies:
            # Stop pressed while the reply was being written
            self.cancelled_replies -= 1
            raise TurnCancelledError("stop pressed")
        return AIMessage(content=self.reply)


class ToolCallingModel:
    """Triage model: ``bind_tools`` returns a runnable that replays responses."""

    def __init__(self, *responses: AIMessage):
        self.responses = list(responses)
        self.calls = 0

    def bind_tools(self, tools):
        return self

    async def ainvoke(self, messages, config=None):
        self.calls += 1
        return self.responses.pop(0)


class FakeDiscovery(BasePhaseSubgraph):
    name = "discovery"

    def __init__(self):
        self.inputs: List[Dict[str, Any]] = []

    def transform_input(self, state):
        return {"request": extract_user_request(state.get("messages") or [])}

    def create(self, config: Optional[Dict[str, Any]] = None):
        async def run(subgraph_input):
            self.inputs.append(subgraph_input)
            return {"node_types": ["slack"]}

        return RunnableLambda(run)

    def transform_output(self, output, state):
        return {
            "discovery_context": {"summary": f"Found {len(output['node_types'])} node type(s)"},
            "coordination_log": [make_entry("discovery", "completed", "Found 1 node type")],
        }


class PausingDiscovery(FakeDiscovery):
    """Asks the user a question (graph interrupt) when the request mentions a channel."""

    def transform_input(self, state):
        subgraph_input = super().transform_input(state)
        if "channel" in subgraph_input["request"]:
            interrupt({"question": "Which Slack channel should I post to?"})
        return subgraph_input


class FakeBuilder(BasePhaseSubgraph):
    name = "builder"

    def __init__(self, error: Optional[Exception] = None):
        self.error = error

    def transform_input(self, state):
        return {"workflow": state.get("workflow_json"), "discovery": state.get("discovery_context")}

    def create(self, config: Optional[Dict[str, Any]] = None):
        async def run(subgraph_input):
            if self.error is not None:
                raise self.error
            return {"nodes": [{"id": "n1", "name": "Slack", "type": "slack"}]}

        return RunnableLambda(run)

    def transform_output(self, output, state):
        return {
            "workflow_operations": [{"type": "add_nodes", "nodes": output["nodes"]}],
            "coordination_log": [make_entry("builder", "completed", f"Created {len(output['nodes'])} node(s)")],
        }


class FakeAssistantHandler:
    def __init__(self, text="Your Slack credential is missing the chat:write scope.", session_id="sess-42"):
        self.text = text
        self.session_id = session_id
        self.contexts = []

    async def execute(self, context, user_id, writer, token=None):
        self.contexts.append(context)
        writer(tool_chunk("assistant-1", "assistant", "running", "Connecting to assistant..."))
        writer(message_chunk(self.text))
        writer(tool_chunk("assistant-1", "assistant", "completed", "Done"))
        return AssistantResult(response_text=self.text, summary=self.text, sdk_session_id=self.session_id)


def make_settings(**orchestration) -> Settings:
    return Settings(
        models=ModelRoutingSettings(default="fake-model", api_key="test-key"),
        orchestration=OrchestrationSettings(**orchestration),
        assistant=AssistantSettings(),
    )


@pytest.fixture
def checkpointer():
    return MemorySaver()


@pytest.fixture
def discovery():
    return FakeDiscovery()


@pytest.fixture
def builder():
    return FakeBuilder()


@pytest.fixture
def fakes():
    """Expose the fake classes to test modules."""

    class Fakes:
        ScriptedModel = ScriptedModel
        ToolCallingModel = ToolCallingModel
        FakeDiscovery = FakeDiscovery
        PausingDiscovery = PausingDiscovery
        FakeBuilder = FakeBuilder
        FakeAssistantHandler = FakeAssistantHandler
        StageLLMs = StageLLMs
        make_settings = staticmethod(make_settings)

    return Fakes
