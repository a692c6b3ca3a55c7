"""Configuration exports."""

from .settings import (
    AssistantSettings,
    ModelRoutingSettings,
    ObservabilitySettings,
    OrchestrationSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "ModelRoutingSettings",
    "OrchestrationSettings",
    "AssistantSettings",
    "ObservabilitySettings",
]
