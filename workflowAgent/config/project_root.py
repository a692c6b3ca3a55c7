"""Project root path detection - works regardless of working directory."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_project_root() -> Path:
    """Get absolute path to the directory that contains the ``workflowAgent`` package.

    Example:
        >>> root = get_project_root()
        >>> templates = root / "workflowAgent" / "config" / "prompt_templates"
    """
    # project_root.py -> config/ -> workflowAgent/ -> project root
    project_root = Path(__file__).resolve().parent.parent.parent

    if not (project_root / "workflowAgent").exists():
        raise RuntimeError(
            f"Could not locate project root. Expected 'workflowAgent' directory at {project_root}"
        )

    return project_root


def resolve_project_path(relative_path: str | Path) -> Path:
    """Resolve a path relative to the project root.

    Example:
        >>> resolve_project_path("workflowAgent/config/prompt_templates/supervisor.jinja2")
    """
    return get_project_root() / relative_path


__all__ = ["get_project_root", "resolve_project_path"]
