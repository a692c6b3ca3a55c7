"""Coordination log helpers and deterministic routing.

The coordination log records *facts* (which phase started, completed or failed)
instead of routing decisions. The next phase is always recomputed from the log,
so a turn interrupted for human input can resume without extra bookkeeping.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from .state import CoordinationLogEntry, PhaseId

# Which phase follows a completed phase. Phases missing here hand off to the responder.
PHASE_ADJACENCY: Dict[str, str] = {
    "discovery": "builder",
    "builder": "responder",
    "assistant": "responder",
}

CONTINUE = "continue"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_coordination_log_entry(value: Any) -> bool:
    """Shape guard for entries returned by phases (drops malformed entries)."""
    if not isinstance(value, dict):
        return False
    return (
        isinstance(value.get("phase"), str)
        and isinstance(value.get("status"), str)
        and isinstance(value.get("timestamp"), int)
        and not isinstance(value.get("timestamp"), bool)
        and isinstance(value.get("summary"), str)
    )


def get_last_completed_phase(log: Sequence[CoordinationLogEntry]) -> Optional[PhaseId]:
    """Return the phase of the most recent completed or error entry."""
    for entry in reversed(log):
        if entry["status"] in ("completed", "error"):
            return entry["phase"]
    return None


def has_error_in_log(log: Sequence[CoordinationLogEntry]) -> bool:
    return any(entry["status"] == "error" for entry in log)


def get_next_phase_from_log(log: Sequence[CoordinationLogEntry]) -> str:
    """Decide the next phase without a model call.

    Returns:
        "responder" if any entry of this turn failed, "continue" if no phase has finished yet
        (the supervisor decides), otherwise the adjacency-table successor.
    """
    if has_error_in_log(get_current_turn_entries(log)):
        return "responder"

    last_phase = get_last_completed_phase(log)
    if last_phase is None:
        return CONTINUE

    return PHASE_ADJACENCY.get(last_phase, "responder")


def get_current_turn_entries(log: Sequence[CoordinationLogEntry]) -> List[CoordinationLogEntry]:
    """Entries recorded after the last completed responder (i.e. this turn)."""
    for index in range(len(log) - 1, -1, -1):
        entry = log[index]
        if entry["phase"] == "responder" and entry["status"] == "completed":
            return list(log[index + 1:])
    return list(log)


def get_last_turn_entries(log: Sequence[CoordinationLogEntry]) -> List[CoordinationLogEntry]:
    """Entries of the most recently finished turn, its responder entries included."""
    for index in range(len(log) - 1, -1, -1):
        entry = log[index]
        if entry["phase"] == "responder" and entry["status"] == "completed":
            return get_current_turn_entries(log[:index]) + list(log[index:index + 1])
    return list(log)


def has_builder_phase_in_log(log: Sequence[CoordinationLogEntry]) -> bool:
    return any(
        entry["phase"] == "builder" and entry["status"] == "completed"
        for entry in get_current_turn_entries(log)
    )


def find_last_entry(
    log: Sequence[CoordinationLogEntry], phase: str, status: str = "completed"
) -> Optional[CoordinationLogEntry]:
    for entry in reversed(log):
        if entry["phase"] == phase and entry["status"] == status:
            return entry
    return None


def summarize_coordination_log(entries: Sequence[CoordinationLogEntry]) -> str:
    """One line per finished entry, e.g. ``- discovery: completed (Found 3 nodes)``."""
    lines = []
    for entry in entries:
        if entry["status"] == "in_progress":
            continue
        lines.append(f"- {entry['phase']}: {entry['status']} ({entry['summary']})")
    return "\n".join(lines)


# ========== Metadata builders ==========

def create_phase_metadata(phase: str) -> Dict[str, Any]:
    return {"phase": phase}


def create_error_metadata(*, failed_phase: str, error_message: str) -> Dict[str, Any]:
    return {"phase": "error", "failed_phase": failed_phase, "error_message": error_message}


def create_assistant_metadata(*, has_code_diff: bool, suggestion_count: int) -> Dict[str, Any]:
    return {"phase": "assistant", "has_code_diff": has_code_diff, "suggestion_count": suggestion_count}


def create_responder_metadata(*, response_length: int) -> Dict[str, Any]:
    return {"phase": "responder", "response_length": response_length}


def make_entry(
    phase: str,
    status: str,
    summary: str,
    *,
    timestamp: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    output: Optional[str] = None,
) -> CoordinationLogEntry:
    entry: CoordinationLogEntry = {
        "phase": phase,  # type: ignore[typeddict-item]
        "status": status,  # type: ignore[typeddict-item]
        "timestamp": timestamp if timestamp is not None else now_ms(),
        "summary": summary,
    }
    if metadata is not None:
        entry["metadata"] = metadata
    if output is not None:
        entry["output"] = output
    return entry
