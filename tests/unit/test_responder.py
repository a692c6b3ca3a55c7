"""Unit tests for the responder node."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from workflowAgent.graph.coordination_log import make_entry
from workflowAgent.graph.nodes.responder import (
    CLEARED_MESSAGE,
    COMPACTED_MESSAGE,
    build_responder_context,
    build_responder_node,
)


def mock_llm(reply="Here is your workflow."):
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content=reply))
    return llm


class TestAssistantForwarding:
    @pytest.mark.asyncio
    async def test_forwards_assistant_text(self):
        llm = mock_llm()
        node = build_responder_node(llm=llm)
        log = [
            make_entry("assistant", "in_progress", "Starting assistant"),
            make_entry("assistant", "completed", "Explained webhooks", output="Webhooks let you..."),
        ]

        updates = await node({"messages": [HumanMessage(content="what is a webhook?")], "coordination_log": log})

        llm.ainvoke.assert_not_awaited()
        assert "messages" not in updates
        (entry,) = updates["coordination_log"]
        assert entry["phase"] == "responder"
        assert entry["status"] == "completed"
        assert entry["summary"] == "Assistant response forwarded"

    @pytest.mark.asyncio
    async def test_silent_assistant_falls_through(self):
        llm = mock_llm("Sorry, no answer from the assistant.")
        node = build_responder_node(llm=llm)
        log = [make_entry("assistant", "completed", "Assistant returned no text", output="")]

        updates = await node({"messages": [HumanMessage(content="help")], "coordination_log": log})

        llm.ainvoke.assert_awaited_once()
        assert updates["messages"][0].content == "Sorry, no answer from the assistant."


class TestAcknowledgements:
    @pytest.mark.asyncio
    async def test_cleared(self):
        llm = mock_llm()
        updates = await build_responder_node(llm=llm)({"messages": []})
        assert updates["messages"][0].content == CLEARED_MESSAGE
        llm.ainvoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_compacted(self):
        updates = await build_responder_node(llm=mock_llm())({"messages": [], "previous_summary": "sum"})
        assert updates["messages"][0].content == COMPACTED_MESSAGE


class TestSynthesis:
    @pytest.mark.asyncio
    async def test_prompt_and_entries(self):
        llm = mock_llm("Done! I added 2 nodes.")
        node = build_responder_node(llm=llm)
        state = {
            "messages": [HumanMessage(content="build it")],
            "coordination_log": [make_entry("builder", "completed", "Created 2 nodes")],
            "workflow_json": {"name": "Flow", "nodes": [{"name": "A", "type": "t"}], "connections": {}},
        }

        updates = await node(state)

        prompt = llm.ainvoke.await_args.args[0]
        assert isinstance(prompt[0], SystemMessage)
        assert prompt[1].content == "build it"
        assert prompt[-1].name == "context"
        assert "- builder: completed (Created 2 nodes)" in prompt[-1].content

        in_progress, completed = updates["coordination_log"]
        assert in_progress["status"] == "in_progress"
        assert completed["summary"] == "Generated response (22 chars)"
        assert completed["metadata"]["response_length"] == 22

    def test_context_only_covers_current_turn(self):
        state = {
            "coordination_log": [
                make_entry("discovery", "completed", "old turn"),
                make_entry("responder", "completed", "old reply"),
                make_entry("builder", "completed", "new turn"),
            ],
            "previous_summary": "We talked about Slack.",
        }
        context = build_responder_context(state)
        assert "new turn" in context
        assert "old turn" not in context
        assert "<previous_conversation_summary>" in context


class TestGenerationCallback:
    @pytest.mark.asyncio
    async def test_called_after_successful_build(self):
        callback = AsyncMock()
        node = build_responder_node(llm=mock_llm(), on_generation_success=callback)
        state = {
            "messages": [HumanMessage(content="build it")],
            "coordination_log": [make_entry("builder", "completed", "ok")],
        }

        await node(state)

        callback.assert_awaited_once_with(state)

    @pytest.mark.asyncio
    async def test_not_called_without_builder(self):
        callback = MagicMock()
        node = build_responder_node(llm=mock_llm(), on_generation_success=callback)
        await node({"messages": [HumanMessage(content="hi")], "coordination_log": []})
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_called_after_error(self):
        callback = MagicMock()
        node = build_responder_node(llm=mock_llm(), on_generation_success=callback)
        log = [make_entry("builder", "completed", "ok"), make_entry("builder", "error", "Error: x")]
        await node({"messages": [HumanMessage(content="hi")], "coordination_log": log})
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_earlier_turn_error_does_not_block_callback(self):
        callback = MagicMock()
        node = build_responder_node(llm=mock_llm(), on_generation_success=callback)
        log = [
            make_entry("builder", "error", "Error: x"),
            make_entry("responder", "completed", "sorry"),
            make_entry("builder", "completed", "ok"),
        ]
        await node({"messages": [HumanMessage(content="hi")], "coordination_log": log})
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_callback_failure_is_logged(self, caplog):
        callback = MagicMock(side_effect=RuntimeError("telemetry down"))
        node = build_responder_node(llm=mock_llm(), on_generation_success=callback)
        state = {
            "messages": [HumanMessage(content="build it")],
            "coordination_log": [make_entry("builder", "completed", "ok")],
        }

        with caplog.at_level(logging.WARNING):
            updates = await node(state)

        assert updates["messages"]
        assert "on_generation_success callback failed: telemetry down" in caplog.text
