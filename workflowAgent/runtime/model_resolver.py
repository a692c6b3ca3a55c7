"""Per-stage model wiring using environment-derived settings.

Each stage of a turn (supervisor, discovery, planner, builder, responder, triage)
gets its own ``ChatOpenAI`` instance. Stages that share a model id and
credentials share one instance.

Key Functions:
    - resolve_stage_configs(): Extract one model config per stage from settings
    - build_stage_llms(): Instantiate the models into a ``StageLLMs`` record
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, TypedDict

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from workflowAgent.config import Settings

STAGES = ("supervisor", "discovery", "planner", "builder", "responder", "triage")


class ModelConfig(TypedDict):
    id: str
    api_key: Optional[str]
    base_url: Optional[str]
    temperature: float


@dataclass(frozen=True)
class StageLLMs:
    """The model used by each stage of a turn."""

    supervisor: BaseChatModel
    discovery: BaseChatModel
    planner: BaseChatModel
    builder: BaseChatModel
    responder: BaseChatModel
    triage: BaseChatModel

    @classmethod
    def uniform(cls, llm: BaseChatModel) -> "StageLLMs":
        """Use one model for every stage (tests, single-model deployments)."""
        return cls(**{stage: llm for stage in STAGES})


def resolve_stage_configs(settings: Settings) -> Dict[str, ModelConfig]:
    """Build normalized model configs (id + credentials) for every stage.

    Args:
        settings: Application settings loaded from .env

    Returns:
        Dict mapping stage names to ModelConfig dicts
    """
    models = settings.models
    return {
        stage: {
            "id": models.for_stage(stage),
            "api_key": models.api_key,
            "base_url": models.base_url,
            "temperature": models.temperature,
        }
        for stage in STAGES
    }


def _chat_kwargs(config: ModelConfig) -> Dict[str, object]:
    if not config["api_key"]:
        raise RuntimeError(f"Missing API key for model {config['id']}. Set MODEL_API_KEY in .env.")
    kwargs: Dict[str, object] = {
        "model": config["id"],
        "api_key": config["api_key"],
        "temperature": config["temperature"],
    }
    if config["base_url"]:
        kwargs["base_url"] = config["base_url"]
    return kwargs


def build_stage_llms(settings: Settings) -> StageLLMs:
    """Instantiate one ChatOpenAI client per distinct stage configuration.

    Raises:
        RuntimeError: If the API key is missing
    """
    cache: Dict[tuple, ChatOpenAI] = {}
    resolved: Dict[str, BaseChatModel] = {}
    for stage, config in resolve_stage_configs(settings).items():
        key = (config["id"], config["api_key"], config["base_url"], config["temperature"])
        if key not in cache:
            cache[key] = ChatOpenAI(**_chat_kwargs(config))
        resolved[stage] = cache[key]
    return StageLLMs(**resolved)


__all__ = ["StageLLMs", "ModelConfig", "STAGES", "resolve_stage_configs", "build_stage_llms"]
