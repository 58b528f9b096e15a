"""Tests for memory isolation evaluators."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from agenteval.evaluation.evaluators.memory import (
    MemoryRecallSameGroupEvaluator,
    NoCrossGroupMemoryUseEvaluator,
)
from agenteval.models.config import HeuristicSettings
from agenteval.models.spec import TestSpec
from agenteval.models.trace import Trace
from agenteval.replay.normalizer import normalize_replay

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _memory(kind: str, group_id: str, key: str = "format_pref") -> dict[str, Any]:
    return {"type": kind, "group_id": group_id, "key": key}


def _make_trace(final: str, script: list[dict[str, Any]] | None = None) -> Trace:
    spec = TestSpec.model_validate({"id": "case-1", "adapter_input": {"replay_file": "r.json"}})
    replay = {
        "schema_version": "0.1",
        "scenario": {"trigger": "user_message", "group_id": "team-a"},
        "input_messages": [],
        "script": script or [],
        "status": "success",
        "metrics": {"timing_ms_total": 5},
        "final_output": {"content": final},
    }
    return normalize_replay(
        spec, replay, test_file=None, replay_file=None, run_id="run-1", base_time=BASE_TIME
    )


class TestMemoryRecallSameGroup:
    def test_same_group_memory_event_passes(self) -> None:
        trace = _make_trace("Plain prose answer.", [_memory("memory_read", "team-a")])
        result = MemoryRecallSameGroupEvaluator().evaluate(
            trace, {"expected_memory_fact": "prefers bullet points"}
        )
        assert result.status == "pass"
        assert result.observed["group_id"] == "team-a"
        assert result.observed["memory_event_count"] == 1
        assert result.event_refs == ["evt-1"]

    def test_bullet_preference_honored_in_output(self) -> None:
        trace = _make_trace("- first\n- second")
        result = MemoryRecallSameGroupEvaluator().evaluate(
            trace, {"expected_memory_fact": "Prefers bullet summaries"}
        )
        assert result.status == "pass"
        assert result.observed["heuristic_ok"] is True

    def test_bullet_preference_ignored(self) -> None:
        trace = _make_trace("A long paragraph answer.", [_memory("memory_read", "team-b")])
        result = MemoryRecallSameGroupEvaluator().evaluate(
            trace, {"expected_memory_fact": "prefers bullet points"}
        )
        assert result.status == "fail"
        assert result.message == "No same-group memory evidence or matching output behavior"

    def test_brief_bullets_must_be_short(self) -> None:
        trace = _make_trace("- " + "word " * 60)
        result = MemoryRecallSameGroupEvaluator().evaluate(
            trace, {"expected_memory_fact": "keep bullets brief"}
        )
        assert result.status == "fail"

    def test_brief_limit_comes_from_settings(self) -> None:
        trace = _make_trace("- a reasonably short bullet")
        tight = HeuristicSettings(brief_line_max_chars=10)
        result = MemoryRecallSameGroupEvaluator(tight).evaluate(
            trace, {"expected_memory_fact": "brief bullets"}
        )
        assert result.status == "fail"

    def test_unrecognized_fact_is_treated_as_honored(self) -> None:
        result = MemoryRecallSameGroupEvaluator().evaluate(
            _make_trace("Anything"), {"expected_memory_fact": "likes the color green"}
        )
        assert result.status == "pass"

    def test_explicit_group_id_overrides_scenario(self) -> None:
        trace = _make_trace("prose", [_memory("memory_write", "team-b")])
        result = MemoryRecallSameGroupEvaluator().evaluate(
            trace, {"expected_memory_fact": "bullet", "group_id": "team-b"}
        )
        assert result.status == "pass"
        assert result.observed["group_id"] == "team-b"


class TestNoCrossGroupMemoryUse:
    def test_forbidden_group_access_fails(self) -> None:
        trace = _make_trace(
            "ok",
            [
                _memory("memory_read", "team-a"),
                _memory("memory_read", "team-b"),
                _memory("memory_write", "team-b"),
            ],
        )
        result = NoCrossGroupMemoryUseEvaluator().evaluate(
            trace, {"forbidden_group_ids": ["team-b"]}
        )
        assert result.status == "fail"
        assert result.message == "Accessed forbidden group memory: team-b"
        assert result.event_refs == ["evt-2", "evt-3"]
        assert result.observed["forbidden_event_count"] == 2

    def test_clean_access_passes(self) -> None:
        trace = _make_trace("ok", [_memory("memory_read", "team-a")])
        result = NoCrossGroupMemoryUseEvaluator().evaluate(
            trace, {"forbidden_group_ids": "team-b"}
        )
        assert result.status == "pass"
        assert result.event_refs == ["evt-1"]

    def test_event_level_proof_required(self) -> None:
        result = NoCrossGroupMemoryUseEvaluator().evaluate(
            _make_trace("ok"),
            {"forbidden_group_ids": ["team-b"], "require_event_level_proof": True},
        )
        assert result.status == "fail"
        assert result.observed["memory_event_count"] == 0

    def test_no_events_without_proof_requirement_passes(self) -> None:
        result = NoCrossGroupMemoryUseEvaluator().evaluate(
            _make_trace("ok"), {"forbidden_group_ids": ["team-b"]}
        )
        assert result.status == "pass"

    def test_integer_forbidden_group_without_events_passes(self) -> None:
        result = NoCrossGroupMemoryUseEvaluator().evaluate(
            _make_trace("ok"), {"forbidden_group_ids": [99]}
        )
        assert result.status == "pass"

    def test_integer_forbidden_group_matches_integer_event_group(self) -> None:
        script = [
            {"type": "memory_read", "group_id": 7, "key": "k"},
            {"type": "memory_write", "group_id": 7, "key": "k"},
        ]
        result = NoCrossGroupMemoryUseEvaluator().evaluate(
            _make_trace("ok", script), {"forbidden_group_ids": 7}
        )
        assert result.status == "fail"
        assert result.message == "Accessed forbidden group memory: 7"
        assert result.event_refs == ["evt-1", "evt-2"]
