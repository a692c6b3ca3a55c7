"""Multi-agent orchestration core for an AI workflow builder."""

__version__ = "1.0.0"
