"""Tests for test discovery, the per-file pipeline and run-level exit codes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from agenteval.models.config import ProjectConfig
from agenteval.models.result import TestCaseResult
from agenteval.runner import (
    EXIT_ERROR,
    EXIT_FAIL,
    EXIT_NO_TESTS,
    EXIT_PASS,
    FRAMEWORK_ERROR_CATEGORY,
    SpecValidationError,
    discover_test_files,
    exit_code_for,
    new_run_id,
    run_test_case,
    run_tests,
    sanitize_error_message,
)

PASSING_SPEC = """\
id: {case_id}
adapter_input:
  replay_file: replay.json
expected:
  failure_categories: [tool misuse]
assertions:
  - id: calls-search
    type: must_call_tool
    params:
      tool: {tool}
"""


def _make_replay(content: str = "All done") -> dict[str, Any]:
    return {
        "schema_version": "0.1",
        "scenario": {"trigger": "user_message", "group_id": "g1"},
        "input_messages": [{"role": "user", "content": "go"}],
        "script": [
            {"type": "tool_call", "tool": "search", "call_id": "c1", "args": {}},
            {"type": "tool_result", "tool": "search", "call_id": "c1", "success": True},
            {"type": "tool_call", "tool": "fetch", "call_id": "c2", "args": {}},
            {"type": "tool_result", "tool": "fetch", "call_id": "c2", "success": True},
            {"type": "tool_call", "tool": "search", "call_id": "c3", "args": {}},
            {"type": "tool_result", "tool": "search", "call_id": "c3", "success": True},
        ],
        "status": "success",
        "metrics": {"timing_ms_total": 88, "retry_count": 2},
        "final_output": {"content": content},
    }


def _write_case(
    root: Path,
    name: str,
    *,
    tool: str = "search",
    spec: str | None = None,
    replay: Any = None,
) -> Path:
    case_dir = root / name
    case_dir.mkdir(parents=True)
    test_file = case_dir / "test.yaml"
    test_file.write_text(spec or PASSING_SPEC.format(case_id=name, tool=tool), encoding="utf-8")
    if replay is not False:
        payload = _make_replay() if replay is None else replay
        (case_dir / "replay.json").write_text(json.dumps(payload), encoding="utf-8")
    return test_file


def _result(status: str) -> TestCaseResult:
    return TestCaseResult.model_validate(
        {
            "result_id": "r",
            "test_case_id": "c",
            "test_run_id": "run",
            "adapter": {"name": "replay", "version": "0"},
            "status": status,
            "started_at": "2026-01-01T00:00:00Z",
            "finished_at": "2026-01-01T00:00:00Z",
        }
    )


class TestDiscovery:
    def test_directory_is_searched_recursively_and_sorted(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "b")
        _write_case(tmp_path, "a/nested")
        found = discover_test_files(tmp_path)
        assert [p.parent.name for p in found] == ["nested", "b"]
        assert all(p.is_absolute() for p in found)

    def test_single_file(self, tmp_path: Path) -> None:
        test_file = _write_case(tmp_path, "one")
        assert discover_test_files(test_file) == [test_file.resolve()]

    def test_custom_file_name(self, tmp_path: Path) -> None:
        (tmp_path / "case.yaml").write_text("id: x\n", encoding="utf-8")
        _write_case(tmp_path, "other")
        assert [p.name for p in discover_test_files(tmp_path, "case.yaml")] == ["case.yaml"]

    def test_missing_path(self, tmp_path: Path) -> None:
        assert discover_test_files(tmp_path / "nope") == []


class TestExitCodes:
    def test_precedence(self) -> None:
        assert exit_code_for([]) == EXIT_PASS
        assert exit_code_for([_result("pass")]) == EXIT_PASS
        assert exit_code_for([_result("pass"), _result("fail")]) == EXIT_FAIL
        assert exit_code_for([_result("fail"), _result("error")]) == EXIT_ERROR


class TestRunTestCase:
    def test_passing_case(self, tmp_path: Path) -> None:
        result = run_test_case(_write_case(tmp_path, "digest"), "run-1")
        assert result.status == "pass"
        assert result.test_case_id == "digest"
        assert result.test_run_id == "run-1"
        assert result.duration_ms == 88
        assert result.failure_categories == []
        assert result.summary.assertions_total == 1
        assert result.artifacts == {}

    def test_trace_summary_counts_tools_sorted(self, tmp_path: Path) -> None:
        result = run_test_case(_write_case(tmp_path, "digest"), "run-1")
        summary = result.trace_summary
        assert [(c.tool, c.count) for c in summary.tool_calls] == [("fetch", 1), ("search", 2)]
        assert summary.retry_count == 2
        assert summary.status == "success"
        assert summary.trace_id is not None and summary.trace_id.startswith("trace-")

    def test_evidence(self, tmp_path: Path) -> None:
        replay = _make_replay(content="x" * 500)
        result = run_test_case(_write_case(tmp_path, "long", replay=replay), "run-1")
        assert result.evidence["final_output_excerpt"] == "x" * 240
        assert result.evidence["test_file"].endswith("test.yaml")
        assert result.evidence["replay_file"].endswith("replay.json")

    def test_failing_case_carries_expected_categories(self, tmp_path: Path) -> None:
        result = run_test_case(_write_case(tmp_path, "bad", tool="email"), "run-1")
        assert result.status == "fail"
        assert result.failure_categories == ["tool misuse"]
        assert result.summary.critical_failures == 1

    def test_invalid_spec_raises(self, tmp_path: Path) -> None:
        test_file = _write_case(tmp_path, "broken", spec="id: broken\n")
        with pytest.raises(SpecValidationError, match="adapter_input"):
            run_test_case(test_file, "run-1")

    def test_saves_artifacts_when_spec_asks(self, tmp_path: Path) -> None:
        from agenteval.storage.artifacts import ArtifactStore

        spec = PASSING_SPEC.format(case_id="saved", tool="search") + "reporting:\n  save_trace: true\n"
        test_file = _write_case(tmp_path, "saved", spec=spec)
        store = ArtifactStore(tmp_path / "artifacts")
        result = run_test_case(test_file, "run-1", store=store)

        assert set(result.artifacts) == {"trace_path", "result_path"}
        assert store.trace_path("run-1", "saved").exists()
        stored = store.load_result("run-1", "saved")
        assert stored is not None
        assert stored.artifacts == result.artifacts


class TestRunTests:
    def test_all_pass(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "a")
        _write_case(tmp_path, "b")
        report = run_tests(tmp_path, artifacts_dir=tmp_path / "artifacts")
        assert report.exit_code == EXIT_PASS
        assert report.count("pass") == 2
        assert all(r.test_run_id == report.run_id for r in report.results)
        assert not (tmp_path / "artifacts").exists()

    def test_failure_sets_exit_one(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "a")
        _write_case(tmp_path, "b", tool="email")
        report = run_tests(tmp_path, artifacts_dir=tmp_path / "artifacts")
        assert report.exit_code == EXIT_FAIL
        assert [r.status for r in report.results] == ["pass", "fail"]

    def test_bad_replay_becomes_error_result(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "a", tool="email")
        _write_case(tmp_path, "z-broken", replay={"schema_version": "0.1"})
        report = run_tests(tmp_path, artifacts_dir=tmp_path / "artifacts")
        assert report.exit_code == EXIT_ERROR

        error = report.results[1]
        assert error.status == "error"
        assert error.test_case_id == "unknown:z-broken"
        assert error.failure_categories == [FRAMEWORK_ERROR_CATEGORY]
        assert error.evidence["error"].startswith("ReplayValidationError: ")
        assert error.evidence["test_file"].endswith("test.yaml")

    def test_missing_replay_file_is_error(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "lonely", replay=False)
        report = run_tests(tmp_path, artifacts_dir=tmp_path / "artifacts")
        assert report.results[0].status == "error"
        assert "FileNotFoundError" in report.results[0].evidence["error"]

    def test_no_tests(self, tmp_path: Path) -> None:
        report = run_tests(tmp_path)
        assert report.exit_code == EXIT_NO_TESTS
        assert report.results == []

    def test_save_artifacts_override(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "a")
        report = run_tests(tmp_path, save_artifacts=True, artifacts_dir=tmp_path / "out")
        run_dir = tmp_path / "out" / report.run_id
        assert (run_dir / "a.trace.json").exists()
        assert (run_dir / "a.result.json").exists()

    def test_config_enables_artifacts(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "a")
        config = ProjectConfig(save_artifacts=True)
        report = run_tests(tmp_path, config=config, artifacts_dir=tmp_path / "out")
        assert (tmp_path / "out" / report.run_id / "a.trace.json").exists()

    def test_on_result_called_in_order(self, tmp_path: Path) -> None:
        _write_case(tmp_path, "a")
        _write_case(tmp_path, "b")
        seen: list[str] = []
        run_tests(
            tmp_path,
            artifacts_dir=tmp_path / "artifacts",
            on_result=lambda r: seen.append(r.test_case_id),
        )
        assert seen == ["a", "b"]


class TestHelpers:
    def test_run_id_shape(self) -> None:
        run_id = new_run_id()
        assert run_id.startswith("run-")
        assert len(run_id.split("-")[2]) == 8

    def test_sanitize_masks_cwd_and_home(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        exc = FileNotFoundError(f"{tmp_path.resolve()}/cases/replay.json missing")
        assert sanitize_error_message(exc) == "FileNotFoundError: ./cases/replay.json missing"

    def test_sanitize_masks_mac_home(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        exc = ValueError("cannot read /Users/alice/project/replay.json")
        assert sanitize_error_message(exc) == (
            "ValueError: cannot read /Users/<user>/project/replay.json"
        )
