"""Helpers that render state into compact text for model context messages."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage

from workflowAgent.graph.state import SimpleWorkflow


def message_text(message: BaseMessage) -> str:
    """Plain text of a message, joining text blocks of multi-part content."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def is_user_message(message: BaseMessage) -> bool:
    # Error notices are injected as human messages named "system_error"
    return isinstance(message, HumanMessage) and message.name != "system_error"


def last_user_message(messages: Iterable[BaseMessage]) -> Optional[HumanMessage]:
    for message in reversed(list(messages)):
        if is_user_message(message):
            return message
    return None


def extract_user_request(messages: Iterable[BaseMessage]) -> str:
    message = last_user_message(messages)
    return message_text(message).strip() if message is not None else ""


def summarize_workflow(workflow: Optional[SimpleWorkflow], max_nodes: int = 30) -> str:
    """``Name: X`` plus one line per node (name and type), or "" for an empty workflow."""
    if not workflow or not workflow.get("nodes"):
        return ""

    nodes: List[Dict[str, Any]] = workflow["nodes"]
    lines = []
    if workflow.get("name"):
        lines.append(f"Name: {workflow['name']}")
    lines.append(f"Nodes ({len(nodes)}):")
    for node in nodes[:max_nodes]:
        lines.append(f"- {node.get('name', node.get('id', '?'))} ({node.get('type', 'unknown')})")
    if len(nodes) > max_nodes:
        lines.append(f"- ... {len(nodes) - max_nodes} more")

    connection_count = sum(
        len(link_list)
        for outputs in (workflow.get("connections") or {}).values()
        for branches in (outputs or {}).values()
        for link_list in (branches or [])
    )
    lines.append(f"Connections: {connection_count}")
    return "\n".join(lines)


def format_selected_nodes(workflow_context: Optional[Dict[str, Any]]) -> str:
    selected = (workflow_context or {}).get("selected_nodes") or []
    return "\n".join(f"- {name}" for name in selected)


__all__ = [
    "message_text",
    "is_user_message",
    "last_user_message",
    "extract_user_request",
    "summarize_workflow",
    "format_selected_nodes",
]
