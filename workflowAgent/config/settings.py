"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
Every feature toggle used by the orchestrator (merge-ask-build, plan mode, triage entry)
is resolved here once, then passed explicitly into the graph and agents.

Example:
    from workflowAgent.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    model_id = settings.models.supervisor
    cap = settings.orchestration.max_triage_iterations
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class ModelRoutingSettings(BaseSettings):
    """Per-stage model identifiers and shared credentials.

    Each stage of a turn (supervisor, discovery, planner, builder, responder, triage)
    can run on its own model. Unset stages fall back to ``default``.
    """

    default: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("MODEL_DEFAULT", "MODEL_DEFAULT_ID"),
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BASE_URL", "OPENAI_BASE_URL"),
    )
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, alias="MODEL_TEMPERATURE")

    supervisor: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_SUPERVISOR", "MODEL_SUPERVISOR_ID"),
    )
    discovery: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_DISCOVERY", "MODEL_DISCOVERY_ID"),
    )
    planner: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_PLANNER", "MODEL_PLANNER_ID"),
    )
    builder: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BUILDER", "MODEL_BUILDER_ID"),
    )
    responder: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_RESPONDER", "MODEL_RESPONDER_ID"),
    )
    triage: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_TRIAGE", "MODEL_TRIAGE_ID"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def for_stage(self, stage: str) -> str:
        """Return the model id configured for ``stage`` (falls back to ``default``)."""
        return getattr(self, stage, None) or self.default


class OrchestrationSettings(BaseSettings):
    """Turn-level control settings.

    - max_triage_iterations: Cap on model calls in the triage tool loop (1-50, default: 10)
    - max_discovery_iterations / max_builder_iterations: Recursion limits passed to phase subgraphs
    - auto_compact_threshold_tokens: Approximate history size that triggers auto-compaction
    - merge_ask_build: Let the supervisor route knowledge questions to the assistant phase
    - plan_mode: Allow plan-mode turns (discovery produces a plan before builder runs)
    - enable_triage: Use the triage tool loop as the turn entry point when an assistant is wired
    """

    max_triage_iterations: int = Field(default=10, ge=1, le=50, alias="MAX_TRIAGE_ITERATIONS")
    max_discovery_iterations: int = Field(default=50, ge=1, le=500, alias="MAX_DISCOVERY_ITERATIONS")
    max_builder_iterations: int = Field(default=100, ge=1, le=500, alias="MAX_BUILDER_ITERATIONS")
    auto_compact_threshold_tokens: int = Field(
        default=20_000, ge=1_000, alias="AUTO_COMPACT_THRESHOLD_TOKENS"
    )
    merge_ask_build: bool = Field(
        default=False,
        validation_alias=AliasChoices("MERGE_ASK_BUILD", "FEAT_MERGE_ASK_BUILD"),
    )
    plan_mode: bool = Field(default=False, alias="PLAN_MODE")
    enable_triage: bool = Field(default=False, alias="ENABLE_TRIAGE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class AssistantSettings(BaseSettings):
    """Knowledge-assistant service endpoint.

    The assistant phase is only wired when ``base_url`` is set. ``timeout_seconds`` is
    applied by the assistant phase node around each call; it is unset by default.
    """

    base_url: Optional[str] = Field(default=None, alias="ASSISTANT_BASE_URL")
    api_key: Optional[str] = Field(default=None, alias="ASSISTANT_API_KEY")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, alias="ASSISTANT_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Tracing and logging configuration."""

    langsmith_project: Optional[str] = Field(default=None, alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")

    log_prompt_max_length: int = Field(default=500, ge=100, le=5000, alias="LOG_PROMPT_MAX_LENGTH")
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing four nested settings groups:
    - models: Per-stage model routing and credentials (ModelRoutingSettings)
    - orchestration: Turn limits and feature toggles (OrchestrationSettings)
    - assistant: Knowledge-assistant endpoint (AssistantSettings)
    - observability: Tracing and logging (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelRoutingSettings = Field(default_factory=ModelRoutingSettings)
    orchestration: OrchestrationSettings = Field(default_factory=OrchestrationSettings)
    assistant: AssistantSettings = Field(default_factory=AssistantSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
