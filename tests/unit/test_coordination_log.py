"""Unit tests for coordination log helpers and deterministic routing."""

from workflowAgent.graph.coordination_log import (
    CONTINUE,
    PHASE_ADJACENCY,
    create_error_metadata,
    find_last_entry,
    get_current_turn_entries,
    get_last_completed_phase,
    get_last_turn_entries,
    get_next_phase_from_log,
    has_builder_phase_in_log,
    has_error_in_log,
    is_coordination_log_entry,
    make_entry,
    summarize_coordination_log,
)
from workflowAgent.graph.state import CLEAR_COORDINATION_LOG, merge_coordination_log, merge_operations


def entry(phase, status="completed", summary="done", timestamp=1):
    return make_entry(phase, status, summary, timestamp=timestamp)


class TestNextPhaseFromLog:
    """Routing computed from the log alone."""

    def test_empty_log_continues(self):
        assert get_next_phase_from_log([]) == CONTINUE

    def test_only_in_progress_continues(self):
        assert get_next_phase_from_log([entry("discovery", "in_progress")]) == CONTINUE

    def test_discovery_then_builder(self):
        log = [entry("discovery", "in_progress"), entry("discovery")]
        assert get_next_phase_from_log(log) == "builder"

    def test_builder_then_responder(self):
        assert get_next_phase_from_log([entry("discovery"), entry("builder")]) == "responder"

    def test_assistant_then_responder(self):
        assert get_next_phase_from_log([entry("assistant")]) == "responder"

    def test_unknown_phase_defaults_to_responder(self):
        assert get_next_phase_from_log([entry("supervisor")]) == "responder"

    def test_any_error_routes_to_responder(self):
        """An error anywhere wins over a later successful phase."""
        log = [entry("discovery", "error"), entry("discovery")]
        assert get_next_phase_from_log(log) == "responder"

    def test_error_from_earlier_turn_is_ignored(self):
        log = [entry("builder", "error"), entry("responder"), entry("discovery")]
        assert get_next_phase_from_log(log) == "builder"

    def test_adjacency_table(self):
        assert PHASE_ADJACENCY == {"discovery": "builder", "builder": "responder", "assistant": "responder"}


class TestLogQueries:
    def test_last_completed_phase_counts_errors(self):
        log = [entry("discovery"), entry("builder", "error"), entry("responder", "in_progress")]
        assert get_last_completed_phase(log) == "builder"

    def test_last_completed_phase_none(self):
        assert get_last_completed_phase([entry("builder", "in_progress")]) is None

    def test_has_error(self):
        assert has_error_in_log([entry("builder", "error")])
        assert not has_error_in_log([entry("builder")])

    def test_current_turn_entries_after_last_responder(self):
        log = [
            entry("discovery", timestamp=1),
            entry("responder", timestamp=2),
            entry("builder", "in_progress", timestamp=3),
            entry("builder", timestamp=4),
        ]
        current = get_current_turn_entries(log)
        assert [e["timestamp"] for e in current] == [3, 4]

    def test_current_turn_entries_without_responder(self):
        log = [entry("discovery"), entry("builder")]
        assert get_current_turn_entries(log) == log

    def test_builder_in_previous_turn_not_counted(self):
        log = [entry("builder"), entry("responder"), entry("assistant")]
        assert not has_builder_phase_in_log(log)

    def test_builder_in_current_turn(self):
        log = [entry("responder"), entry("discovery"), entry("builder")]
        assert has_builder_phase_in_log(log)

    def test_last_turn_entries_include_responder(self):
        log = [
            entry("builder", timestamp=1),
            entry("responder", timestamp=2),
            entry("assistant", timestamp=3),
            entry("responder", "in_progress", timestamp=4),
            entry("responder", timestamp=5),
        ]
        assert [e["timestamp"] for e in get_last_turn_entries(log)] == [3, 4, 5]

    def test_find_last_entry(self):
        log = [entry("assistant", summary="first"), entry("assistant", summary="second")]
        assert find_last_entry(log, "assistant")["summary"] == "second"
        assert find_last_entry(log, "builder") is None

    def test_summarize_skips_in_progress(self):
        log = [entry("discovery", "in_progress"), entry("discovery", summary="Found 3 nodes")]
        assert summarize_coordination_log(log) == "- discovery: completed (Found 3 nodes)"


class TestEntryShape:
    def test_make_entry_optional_fields(self):
        plain = make_entry("builder", "completed", "ok", timestamp=5)
        assert plain == {"phase": "builder", "status": "completed", "timestamp": 5, "summary": "ok"}

        full = make_entry("assistant", "completed", "ok", metadata={"a": 1}, output="text")
        assert full["metadata"] == {"a": 1}
        assert full["output"] == "text"
        assert isinstance(full["timestamp"], int)

    def test_shape_guard(self):
        assert is_coordination_log_entry(entry("builder"))
        assert not is_coordination_log_entry({"phase": "builder", "status": "completed"})
        assert not is_coordination_log_entry({**entry("builder"), "timestamp": True})
        assert not is_coordination_log_entry("builder")

    def test_error_metadata(self):
        metadata = create_error_metadata(failed_phase="builder", error_message="boom")
        assert metadata == {"phase": "error", "failed_phase": "builder", "error_message": "boom"}


class TestReducers:
    def test_coordination_log_appends(self):
        merged = merge_coordination_log([entry("discovery")], [entry("builder")])
        assert [e["phase"] for e in merged] == ["discovery", "builder"]

    def test_coordination_log_clear_sentinel_replaces(self):
        merged = merge_coordination_log([entry("discovery"), entry("builder", "error")], [CLEAR_COORDINATION_LOG])
        assert merged == []

        kept = merge_coordination_log([entry("builder", "error")], [CLEAR_COORDINATION_LOG, entry("discovery")])
        assert [e["phase"] for e in kept] == ["discovery"]

    def test_coordination_log_empty_update(self):
        assert merge_coordination_log([entry("builder")], None) == [entry("builder")]

    def test_operations_none_clears(self):
        assert merge_operations([{"type": "clear"}], None) == []
        assert merge_operations([{"type": "clear"}], [{"type": "set_name"}]) == [
            {"type": "clear"},
            {"type": "set_name"},
        ]
