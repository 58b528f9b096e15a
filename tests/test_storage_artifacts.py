"""Tests for agenteval.storage.artifacts - JSON artifact persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from agenteval.models.result import TestCaseResult
from agenteval.models.spec import TestSpec
from agenteval.models.trace import Trace
from agenteval.replay.normalizer import normalize_replay
from agenteval.storage.artifacts import ArtifactStore, safe_id

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _make_trace() -> Trace:
    spec = TestSpec.model_validate({"id": "case-1", "adapter_input": {"replay_file": "r.json"}})
    replay = {
        "schema_version": "0.1",
        "scenario": {"trigger": "user_message"},
        "input_messages": [],
        "script": [{"type": "final_output", "content": "done"}],
        "status": "success",
        "metrics": {"timing_ms_total": 5},
    }
    return normalize_replay(
        spec, replay, test_file=None, replay_file=None, run_id="run-1", base_time=BASE_TIME
    )


def _make_result() -> TestCaseResult:
    return TestCaseResult.model_validate(
        {
            "result_id": "result-1",
            "test_case_id": "case-1",
            "test_run_id": "run-1",
            "adapter": {"name": "replay", "version": "0.1.0"},
            "status": "pass",
            "started_at": "2026-01-01T00:00:00Z",
            "finished_at": "2026-01-01T00:00:01Z",
        }
    )


@pytest.fixture
def store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "artifacts")


class TestSafeId:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("daily-digest_v1.2", "daily-digest_v1.2"),
            ("group/../secret", "group_.._secret"),
            ("hello world", "hello_world"),
            ("", "unnamed"),
        ],
    )
    def test_sanitizes(self, raw: str, expected: str) -> None:
        assert safe_id(raw) == expected


class TestArtifactStore:
    def test_layout(self, store: ArtifactStore, tmp_path: Path) -> None:
        assert store.trace_path("run-1", "a b") == tmp_path / "artifacts" / "run-1" / "a_b.trace.json"
        assert store.result_path("run-1", "x").name == "x.result.json"

    def test_trace_round_trip(self, store: ArtifactStore) -> None:
        trace = _make_trace()
        path = store.save_trace("run-1", "case-1", trace)
        assert path.exists()
        assert json.loads(path.read_text())["test_case_id"] == "case-1"
        assert store.load_trace("run-1", "case-1") == trace

    def test_result_round_trip(self, store: ArtifactStore) -> None:
        result = _make_result()
        store.save_result("run-1", "case-1", result)
        assert store.load_result("run-1", "case-1") == result

    def test_no_tmp_file_left_behind(self, store: ArtifactStore) -> None:
        store.save_result("run-1", "case-1", _make_result())
        assert [p.name for p in store.run_dir("run-1").iterdir()] == ["case-1.result.json"]

    def test_pretty_printed(self, store: ArtifactStore) -> None:
        path = store.save_result("run-1", "case-1", _make_result())
        assert path.read_text().startswith('{\n  "schema_version"')

    def test_missing_returns_none(self, store: ArtifactStore) -> None:
        assert store.load_trace("run-1", "nope") is None
        assert store.load_result("run-1", "nope") is None

    def test_list_runs(self, store: ArtifactStore) -> None:
        assert store.list_runs() == []
        store.save_result("run-b", "c", _make_result())
        store.save_result("run-a", "c", _make_result())
        assert store.list_runs() == ["run-a", "run-b"]
