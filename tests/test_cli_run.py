"""Tests for the agenteval run CLI command."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from agenteval import __version__
from agenteval.cli.main import app

runner = CliRunner()

SPEC = """\
id: {case_id}
adapter_input:
  replay_file: replay.json
assertions:
  - id: calls-tool
    type: must_call_tool
    params:
      tool: {tool}
  - id: brief
    type: output_matches_format
    severity: warning
    params:
      format: bullet_list
      min_bullets: 5
"""

REPLAY: dict[str, Any] = {
    "schema_version": "0.1",
    "scenario": {"trigger": "scheduler", "scheduler_context": {"task_id": "nightly"}},
    "input_messages": [],
    "script": [
        {"type": "tool_call", "tool": "search", "call_id": "c1", "args": {"q": "news"}},
        {"type": "tool_result", "tool": "search", "call_id": "c1", "success": True},
        {"type": "final_output", "content": "- one\n- two"},
    ],
    "status": "success",
    "metrics": {"timing_ms_total": 12},
}


def _write_case(root: Path, name: str, tool: str = "search", replay: Any = None) -> None:
    case_dir = root / "cases" / name
    case_dir.mkdir(parents=True)
    (case_dir / "test.yaml").write_text(SPEC.format(case_id=name, tool=tool), encoding="utf-8")
    (case_dir / "replay.json").write_text(json.dumps(replay or REPLAY), encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("AGENTEVAL_LOG_LEVEL", raising=False)
    return tmp_path


class TestRunCommand:
    def test_passing_run_exits_zero(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases"])
        assert result.exit_code == 0
        assert "PASS  digest (12ms)" in result.output
        assert "Tools: search(1)" in result.output
        assert "Summary: 1 passed, 0 failed, 0 errors" in result.output

    def test_warning_failure_is_shown_but_does_not_fail(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases"])
        assert "[FAIL] brief (output_matches_format)" in result.output

    def test_critical_failure_exits_one(self, project: Path) -> None:
        _write_case(project, "good")
        _write_case(project, "bad", tool="email")
        result = runner.invoke(app, ["run", "cases"])
        assert result.exit_code == 1
        assert "FAIL  bad" in result.output
        assert "Summary: 1 passed, 1 failed, 0 errors" in result.output

    def test_broken_replay_exits_two(self, project: Path) -> None:
        _write_case(project, "broken", replay={"schema_version": "0.1"})
        result = runner.invoke(app, ["run", "cases"])
        assert result.exit_code == 2
        assert "ERROR unknown:broken" in result.output

    def test_no_tests_exits_three(self, project: Path) -> None:
        (project / "empty").mkdir()
        result = runner.invoke(app, ["run", "empty"])
        assert result.exit_code == 3
        assert "No test files found at empty" in result.output

    def test_single_file(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases/digest/test.yaml"])
        assert result.exit_code == 0
        assert "Summary: 1 passed" in result.output

    def test_json_output(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["exit_code"] == 0
        case = payload["results"][0]
        assert case["test_case_id"] == "digest"
        assert case["trace_summary"]["tool_calls"] == [{"tool": "search", "count": 1}]
        assert [a["status"] for a in case["assertions"]] == ["pass", "fail"]

    def test_save_artifacts(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases", "--save-artifacts", "--json"])
        payload = json.loads(result.stdout)
        run_dir = project / "artifacts" / payload["run_id"]
        assert (run_dir / "digest.trace.json").exists()
        assert (run_dir / "digest.result.json").exists()
        assert payload["results"][0]["artifacts"]["trace_path"].endswith("digest.trace.json")

    def test_artifacts_dir_option(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(
            app, ["run", "cases", "--save-artifacts", "--artifacts-dir", "out", "--json"]
        )
        payload = json.loads(result.stdout)
        assert (project / "out" / payload["run_id"] / "digest.result.json").exists()

    def test_project_config_enables_artifacts(self, project: Path) -> None:
        (project / "agenteval.yaml").write_text(
            "save_artifacts: true\nartifacts_dir: .agenteval/runs\n", encoding="utf-8"
        )
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases", "--json"])
        payload = json.loads(result.stdout)
        assert (project / ".agenteval" / "runs" / payload["run_id"]).is_dir()

    def test_invalid_project_config_exits_two(self, project: Path) -> None:
        (project / "agenteval.yaml").write_text("bogus_key: 1\n", encoding="utf-8")
        _write_case(project, "digest")
        result = runner.invoke(app, ["run", "cases"])
        assert result.exit_code == 2
        assert "Invalid project config" in result.output


class TestAppCallback:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"agenteval {__version__}"

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "run" in result.output
        assert "validate" in result.output
