"""Tools bound to agent models."""

from .triage_tools import TRIAGE_TOOLS, ask_assistant, build_workflow

__all__ = ["TRIAGE_TOOLS", "ask_assistant", "build_workflow"]
