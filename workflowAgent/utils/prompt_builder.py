"""Prompt template builder.

System prompts live as Jinja2 templates under ``workflowAgent/config/prompt_templates``
so they can be edited without touching code. Templates are rendered in a
sandboxed environment.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from jinja2.sandbox import SandboxedEnvironment

from workflowAgent.config.project_root import resolve_project_path


class PromptBuilder:
    """Loads and renders the prompt templates used by each stage."""

    TEMPLATE_DIR = "workflowAgent/config/prompt_templates"
    SUPERVISOR_TEMPLATE = f"{TEMPLATE_DIR}/supervisor.jinja2"
    RESPONDER_TEMPLATE = f"{TEMPLATE_DIR}/responder.jinja2"
    TRIAGE_TEMPLATE = f"{TEMPLATE_DIR}/triage.jinja2"
    COMPACT_TEMPLATE = f"{TEMPLATE_DIR}/compact.jinja2"
    WORKFLOW_NAME_TEMPLATE = f"{TEMPLATE_DIR}/workflow_name.jinja2"

    @staticmethod
    def _load_template(template_path: str) -> str:
        full_path = resolve_project_path(template_path)
        with open(full_path, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def _render_template(template: str, params: Dict[str, Any]) -> str:
        env = SandboxedEnvironment(trim_blocks=True, lstrip_blocks=True)
        return env.from_string(template).render(**params).strip()

    @classmethod
    def load_supervisor_prompt(cls, *, merge_ask_build: bool = False) -> str:
        """Routing prompt; the assistant option only appears when ask/build routing is merged."""
        template = cls._load_template(cls.SUPERVISOR_TEMPLATE)
        return cls._render_template(template, {"merge_ask_build": merge_ask_build})

    @classmethod
    def load_responder_prompt(cls) -> str:
        return cls._render_template(cls._load_template(cls.RESPONDER_TEMPLATE), {})

    @classmethod
    def load_triage_prompt(
        cls,
        *,
        history: Optional[List[Dict[str, Any]]] = None,
        workflow_summary: str = "",
        selected_nodes: str = "",
    ) -> str:
        """Triage prompt with the rendered ``<conversation_history>`` block.

        Args:
            history: Conversation entries (build-request, assistant-exchange, plan)
            workflow_summary: Short description of the current workflow
            selected_nodes: Nodes the user has selected in the editor
        """
        template = cls._load_template(cls.TRIAGE_TEMPLATE)
        return cls._render_template(
            template, {"history": history or [], "workflow_summary": workflow_summary, "selected_nodes": selected_nodes}
        )

    @classmethod
    def load_compact_prompt(cls, **params) -> str:
        return cls._render_template(cls._load_template(cls.COMPACT_TEMPLATE), params)

    @classmethod
    def load_workflow_name_prompt(cls, **params) -> str:
        return cls._render_template(cls._load_template(cls.WORKFLOW_NAME_TEMPLATE), params)
