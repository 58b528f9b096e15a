"""Tests for the agenteval validate CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from agenteval.cli.main import app
from agenteval.cli.validate_cmd import check_replay
from agenteval.models.spec import TestSpec

runner = CliRunner()

VALID_SPEC = """\
id: digest
adapter_input:
  replay_file: replay.json
assertions:
  - id: calls-search
    type: must_call_tool
    params:
      tool: search
"""

VALID_REPLAY = {
    "schema_version": "0.1",
    "scenario": {"trigger": "user_message"},
    "input_messages": [],
    "script": [
        {"type": "tool_call", "tool": "search", "call_id": "c1"},
        {"type": "final_output", "content": "done"},
    ],
    "status": "success",
    "metrics": {"timing_ms_total": 3},
}


def _write_case(root: Path, name: str, spec: str = VALID_SPEC, replay: object = VALID_REPLAY) -> Path:
    case_dir = root / name
    case_dir.mkdir(parents=True)
    test_file = case_dir / "test.yaml"
    test_file.write_text(spec, encoding="utf-8")
    if replay is not None:
        (case_dir / "replay.json").write_text(json.dumps(replay), encoding="utf-8")
    return test_file


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CI", raising=False)
    return tmp_path


class TestValidateCommand:
    def test_valid_case_exits_zero(self, project: Path) -> None:
        _write_case(project, "digest")
        result = runner.invoke(app, ["validate", "digest/test.yaml"])
        assert result.exit_code == 0
        assert "digest/test.yaml ... valid" in result.output
        assert "1/1 test files valid" in result.output

    def test_no_args_scans_current_directory(self, project: Path) -> None:
        _write_case(project, "a")
        _write_case(project, "b/nested")
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 0
        assert "2/2 test files valid" in result.output

    def test_typo_reports_suggestion(self, project: Path) -> None:
        _write_case(project, "typo", spec=VALID_SPEC.replace("assertions:", "asertions:"))
        result = runner.invoke(app, ["validate", "typo"])
        assert result.exit_code == 1
        assert "error[E001]: unknown field" in result.output
        assert "Did you mean 'assertions'?" in result.output
        assert "0/1 test files valid" in result.output

    def test_ci_mode_concise_format(self, project: Path) -> None:
        _write_case(project, "typo", spec=VALID_SPEC.replace("assertions:", "asertions:"))
        result = runner.invoke(app, ["validate", "--ci", "typo"])
        assert result.exit_code == 1
        assert "typo/test.yaml:4:1 -- asertions: Extra inputs are not permitted" in result.output

    def test_unknown_assertion_type_rejected(self, project: Path) -> None:
        _write_case(project, "odd", spec=VALID_SPEC.replace("must_call_tool", "must_call_tol"))
        result = runner.invoke(app, ["validate", "--ci", "odd"])
        assert result.exit_code == 1
        assert "Unsupported assertion type: must_call_tol" in result.output
        assert "Did you mean 'must_call_tool'?" in result.output

    def test_invalid_replay_reported(self, project: Path) -> None:
        replay = dict(VALID_REPLAY, script=[{"type": "tool_result", "call_id": "c9", "success": True}])
        _write_case(project, "bad-replay", replay=replay)
        result = runner.invoke(app, ["validate", "--ci", "bad-replay"])
        assert result.exit_code == 1
        assert "bad-replay/replay.json:0:0 -- script.0:" in result.output

    def test_missing_replay_reported(self, project: Path) -> None:
        _write_case(project, "lonely", replay=None)
        result = runner.invoke(app, ["validate", "--ci", "lonely"])
        assert result.exit_code == 1
        assert "adapter_input.replay_file: Cannot read replay bundle" in result.output

    def test_mixed_valid_and_invalid(self, project: Path) -> None:
        _write_case(project, "good")
        _write_case(project, "bad", spec="id: bad\n")
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 1
        assert "1/2 test files valid" in result.output

    def test_nonexistent_path(self, project: Path) -> None:
        result = runner.invoke(app, ["validate", "nope.yaml"])
        assert result.exit_code == 1
        assert "File not found: nope.yaml" in result.output

    def test_nothing_to_validate(self, project: Path) -> None:
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 1
        assert "No test.yaml files found." in result.output


class TestCheckReplay:
    def test_valid(self, tmp_path: Path) -> None:
        test_file = _write_case(tmp_path, "digest")
        spec = TestSpec.model_validate({"id": "d", "adapter_input": {"replay_file": "replay.json"}})
        replay_path, errors = check_replay(test_file, spec)
        assert errors == []
        assert replay_path == (tmp_path / "digest" / "replay.json").resolve()

    def test_whole_bundle_error_has_no_step(self, tmp_path: Path) -> None:
        test_file = _write_case(tmp_path, "digest", replay=dict(VALID_REPLAY, status="maybe"))
        spec = TestSpec.model_validate({"id": "d", "adapter_input": {"replay_file": "replay.json"}})
        _, errors = check_replay(test_file, spec)
        assert errors[0].field == "<replay>"
        assert errors[0].type == "replay_invalid"

    def test_not_json(self, tmp_path: Path) -> None:
        test_file = _write_case(tmp_path, "digest", replay=None)
        (tmp_path / "digest" / "replay.json").write_text("{not json", encoding="utf-8")
        spec = TestSpec.model_validate({"id": "d", "adapter_input": {"replay_file": "replay.json"}})
        _, errors = check_replay(test_file, spec)
        assert errors[0].type == "replay_unreadable"
