"""Triage tools - signal tools bound to the triage model.

Like other signal tools they do no work themselves: the triage loop reads the
tool call by name and runs the matching handler, streaming its progress. The
function bodies only matter if a tool is ever executed outside that loop.
"""

from __future__ import annotations

from langchain_core.tools import tool


@tool
def ask_assistant(query: str) -> str:
    """Ask the product assistant a knowledge question.

    Use for questions about how something works, credential setup, and diagnosing
    errors in the current workflow. Do NOT use for requests to change the workflow.

    Args:
        query: The question to ask, self-contained (include node names and error text)
    """
    return f"Assistant query queued: {query}"


@tool
def build_workflow(instructions: str) -> str:
    """Create or modify the workflow. Calling this ends your turn.

    Args:
        instructions: What to build or change, in the user's terms
    """
    return f"Build queued: {instructions}"


TRIAGE_TOOLS = [ask_assistant, build_workflow]

__all__ = ["ask_assistant", "build_workflow", "TRIAGE_TOOLS"]
