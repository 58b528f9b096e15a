"""JSON artifact storage for normalized traces and test case results.

Artifacts for one run live together under ``<artifacts_dir>/<run_id>/``,
one ``.trace.json`` and one ``.result.json`` per test case. Writes are
atomic so an interrupted run never leaves a half-written file behind.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel

from agenteval.logging_config import get_logger
from agenteval.models.result import TestCaseResult
from agenteval.models.trace import Trace

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_id(value: str) -> str:
    """Make an id usable as a file name component."""
    cleaned = _UNSAFE_CHARS.sub("_", value)
    return cleaned or "unnamed"


class ArtifactStore:
    """Persist traces and results as pretty-printed JSON files.

    File layout:
        <artifacts_dir>/
            <run-id>/
                <test-case-id>.trace.json
                <test-case-id>.result.json
    """

    def __init__(self, artifacts_dir: Path) -> None:
        self.artifacts_dir = artifacts_dir

    def run_dir(self, run_id: str) -> Path:
        return self.artifacts_dir / safe_id(run_id)

    def trace_path(self, run_id: str, test_case_id: str) -> Path:
        return self.run_dir(run_id) / f"{safe_id(test_case_id)}.trace.json"

    def result_path(self, run_id: str, test_case_id: str) -> Path:
        return self.run_dir(run_id) / f"{safe_id(test_case_id)}.result.json"

    def _write(self, path: Path, model: BaseModel) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = path.with_name(path.name + ".tmp")
        tmp_file.write_text(model.model_dump_json(indent=2), encoding="utf-8")
        tmp_file.replace(path)
        logger.debug("Wrote artifact %s", path)
        return path

    def save_trace(self, run_id: str, test_case_id: str, trace: Trace) -> Path:
        """Write a normalized trace. Returns the file path."""
        return self._write(self.trace_path(run_id, test_case_id), trace)

    def save_result(self, run_id: str, test_case_id: str, result: TestCaseResult) -> Path:
        """Write a test case result. Returns the file path."""
        return self._write(self.result_path(run_id, test_case_id), result)

    def load_trace(self, run_id: str, test_case_id: str) -> Trace | None:
        path = self.trace_path(run_id, test_case_id)
        if not path.exists():
            return None
        return Trace.model_validate_json(path.read_text(encoding="utf-8"))

    def load_result(self, run_id: str, test_case_id: str) -> TestCaseResult | None:
        path = self.result_path(run_id, test_case_id)
        if not path.exists():
            return None
        return TestCaseResult.model_validate_json(path.read_text(encoding="utf-8"))

    def list_runs(self) -> list[str]:
        """Run ids with stored artifacts, oldest first."""
        if not self.artifacts_dir.exists():
            return []
        return sorted(p.name for p in self.artifacts_dir.iterdir() if p.is_dir())
