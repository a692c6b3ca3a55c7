"""Runtime assembly helpers."""

from .app import TurnInput, TurnRun, WorkflowBuilderApp, build_workflow_app
from .model_resolver import StageLLMs, build_stage_llms, resolve_stage_configs

__all__ = [
    "TurnInput",
    "TurnRun",
    "WorkflowBuilderApp",
    "build_workflow_app",
    "StageLLMs",
    "build_stage_llms",
    "resolve_stage_configs",
]
