"""Observability helpers (LangSmith tracing)."""

from __future__ import annotations

import logging
import os

from workflowAgent.config.settings import ObservabilitySettings

LOGGER = logging.getLogger(__name__)


def configure_tracing(settings: ObservabilitySettings) -> bool:
    """Export tracing settings loaded from .env into the environment LangChain reads.

    Returns:
        Whether LangSmith tracing is enabled
    """
    if settings.langsmith_project:
        os.environ["LANGCHAIN_PROJECT"] = settings.langsmith_project
    if settings.langsmith_api_key:
        os.environ["LANGCHAIN_API_KEY"] = settings.langsmith_api_key
    if settings.langsmith_endpoint:
        os.environ["LANGCHAIN_ENDPOINT"] = settings.langsmith_endpoint
    if settings.tracing_enabled:
        os.environ["LANGCHAIN_TRACING_V2"] = "true"
        LOGGER.info(f"LangSmith tracing enabled (project={settings.langsmith_project or 'default'})")
    return settings.tracing_enabled
