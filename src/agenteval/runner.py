"""Test runner -- discovers test files and turns each into a TestCaseResult.

For every test.yaml: load and validate the spec, load the replay bundle
it points at, normalize it into a Trace, evaluate the assertions and
optionally persist trace and result artifacts. A failure anywhere in
that pipeline becomes an ``error`` result for that file only.
"""

from __future__ import annotations

import json
import os
import re
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from agenteval import __version__
from agenteval.evaluation.engine import EvaluationOutcome, evaluate
from agenteval.loader.validator import ValidationErrorDetail, validate_spec_file
from agenteval.logging_config import get_logger
from agenteval.models.config import ProjectConfig
from agenteval.models.result import (
    ResultSummary,
    TestCaseResult,
    ToolCallCount,
    TraceSummary,
)
from agenteval.models.spec import TestSpec
from agenteval.models.trace import AdapterInfo, Trace
from agenteval.replay.normalizer import normalize_replay
from agenteval.storage.artifacts import ArtifactStore

logger = get_logger(__name__)

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_ERROR = 2
EXIT_NO_TESTS = 3

FRAMEWORK_ERROR_CATEGORY = "framework error"
OUTPUT_EXCERPT_CHARS = 240

_MAC_HOME = re.compile(r"/Users/[^/]+")


class SpecValidationError(Exception):
    """Raised when a test file does not match the TestSpec model."""

    def __init__(self, test_file: str, errors: list[ValidationErrorDetail]) -> None:
        self.test_file = test_file
        self.errors = errors
        details = "; ".join(
            f"{e.field}: {e.message}" + (f" (line {e.line})" if e.line else "")
            for e in errors
        )
        super().__init__(f"Invalid test spec {test_file}: {details}")


@dataclass
class RunReport:
    """Outcome of one ``agenteval run`` invocation."""

    run_id: str
    started_at: datetime
    results: list[TestCaseResult] = field(default_factory=list)
    exit_code: int = EXIT_PASS

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)


def new_run_id(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"run-{now.strftime('%Y%m%d%H%M%S')}-{secrets.token_hex(4)}"


def utc_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def discover_test_files(path: Path, file_name: str = "test.yaml") -> list[Path]:
    """A file is its own test; a directory yields every *file_name* below it, sorted."""
    if path.is_file():
        return [path.resolve()]
    if path.is_dir():
        return sorted(p.resolve() for p in path.rglob(file_name))
    return []


def display_path(path: Path | str) -> str:
    """Path relative to the working directory when possible."""
    try:
        return os.path.relpath(Path(path).resolve(), Path.cwd())
    except ValueError:
        return str(path)


def sanitize_error_message(exc: BaseException) -> str:
    """Exception text with the working directory and home folder masked."""
    message = f"{type(exc).__name__}: {exc}"
    message = message.replace(str(Path.cwd().resolve()), ".")
    message = message.replace(str(Path.home()), "~")
    return _MAC_HOME.sub("/Users/<user>", message)


def exit_code_for(results: list[TestCaseResult]) -> int:
    if any(r.status == "error" for r in results):
        return EXIT_ERROR
    if any(r.status == "fail" for r in results):
        return EXIT_FAIL
    return EXIT_PASS


def build_trace_summary(trace: Trace) -> TraceSummary:
    counts: dict[str, int] = {}
    for event in trace.tool_calls():
        tool = str(event.tool or "") or "unknown"
        counts[tool] = counts.get(tool, 0) + 1
    return TraceSummary(
        trace_id=trace.trace_id,
        status=trace.status,
        tool_calls=[ToolCallCount(tool=t, count=n) for t, n in sorted(counts.items())],
        retry_count=trace.metrics.retry_count,
        timing_ms_total=trace.metrics.timing_ms_total,
    )


def load_spec(test_file: Path) -> TestSpec:
    spec, errors = validate_spec_file(test_file)
    if errors or spec is None:
        raise SpecValidationError(display_path(test_file), errors)
    return spec


def load_replay(replay_path: Path) -> object:
    return json.loads(replay_path.read_text(encoding="utf-8"))


def build_result(
    spec: TestSpec,
    trace: Trace,
    outcome: EvaluationOutcome,
    run_id: str,
    started_at: datetime,
) -> TestCaseResult:
    status = "pass" if outcome.passed else "fail"
    return TestCaseResult(
        result_id=f"result-{uuid.uuid4()}",
        test_case_id=spec.id,
        test_run_id=run_id,
        adapter=trace.adapter,
        status=status,
        started_at=utc_iso(started_at),
        finished_at=utc_iso(datetime.now(timezone.utc)),
        duration_ms=trace.metrics.timing_ms_total,
        summary=ResultSummary.from_assertions(outcome.assertions, outcome.critical_failures),
        failure_categories=list(spec.expected.failure_categories) if status == "fail" else [],
        assertions=outcome.assertions,
        trace_summary=build_trace_summary(trace),
        evidence={
            "final_output_excerpt": trace.output_text[:OUTPUT_EXCERPT_CHARS],
            "test_file": trace.artifacts.source_test_file,
            "replay_file": trace.artifacts.source_replay_file,
        },
    )


def error_result(test_file: Path, run_id: str, exc: BaseException) -> TestCaseResult:
    """Result recorded when a test case could not be evaluated at all."""
    now = utc_iso(datetime.now(timezone.utc))
    return TestCaseResult(
        result_id=f"result-{uuid.uuid4()}",
        test_case_id=f"unknown:{test_file.parent.name or test_file.name}",
        test_run_id=run_id,
        adapter=AdapterInfo(name="unknown", version=__version__),
        status="error",
        started_at=now,
        finished_at=now,
        duration_ms=0,
        failure_categories=[FRAMEWORK_ERROR_CATEGORY],
        evidence={
            "error": sanitize_error_message(exc),
            "test_file": display_path(test_file),
        },
    )


def run_test_case(
    test_file: Path,
    run_id: str,
    *,
    config: ProjectConfig | None = None,
    store: ArtifactStore | None = None,
    save_artifacts: bool = False,
    base_time: datetime | None = None,
) -> TestCaseResult:
    """Evaluate one test file. Raises on any loading or normalization problem.

    Args:
        test_file: Path to the test.yaml.
        run_id: Identifier shared by all test cases of this run.
        config: Project config; defaults apply when None.
        store: Where artifacts go when they are persisted.
        save_artifacts: Persist artifacts even if the spec does not ask to.
        base_time: Anchor for synthesized event timestamps.
    """
    config = config or ProjectConfig()
    started_at = datetime.now(timezone.utc)

    spec = load_spec(test_file)
    replay_path = (test_file.parent / spec.adapter_input.replay_file).resolve()
    replay = load_replay(replay_path)

    trace = normalize_replay(
        spec,
        replay,
        test_file=display_path(test_file),
        replay_file=display_path(replay_path),
        run_id=run_id,
        base_time=base_time or started_at,
        default_adapter=config.default_adapter,
    )
    outcome = evaluate(spec, trace, config.heuristics)
    result = build_result(spec, trace, outcome, run_id, started_at)
    logger.info("%s: %s", spec.id, result.status)

    if store is not None and (save_artifacts or spec.reporting.save_trace):
        trace_path = store.save_trace(run_id, spec.id, trace)
        result = result.model_copy(
            update={
                "artifacts": {
                    "trace_path": display_path(trace_path),
                    "result_path": display_path(store.result_path(run_id, spec.id)),
                }
            }
        )
        store.save_result(run_id, spec.id, result)

    return result


def run_tests(
    path: Path,
    *,
    config: ProjectConfig | None = None,
    save_artifacts: bool | None = None,
    artifacts_dir: Path | None = None,
    on_result: Callable[[TestCaseResult], None] | None = None,
) -> RunReport:
    """Run every test file found at *path*.

    Args:
        path: A test.yaml or a directory searched recursively.
        config: Project config; defaults apply when None.
        save_artifacts: Override for config.save_artifacts.
        artifacts_dir: Override for config.artifacts_dir.
        on_result: Called with each result as soon as it is available.

    Returns:
        RunReport whose exit_code is 0 when everything passed, 1 when
        any test failed, 2 on any error and 3 when no tests were found.
    """
    config = config or ProjectConfig()
    started_at = datetime.now(timezone.utc)
    run_id = new_run_id(started_at)
    report = RunReport(run_id=run_id, started_at=started_at)

    test_files = discover_test_files(path, config.test_file_name)
    if not test_files:
        logger.info("No test files found at %s", path)
        report.exit_code = EXIT_NO_TESTS
        return report
    logger.debug("Discovered %d test file(s) under %s", len(test_files), path)

    store = ArtifactStore(artifacts_dir or Path(config.artifacts_dir))
    force_save = config.save_artifacts if save_artifacts is None else save_artifacts

    for test_file in test_files:
        try:
            result = run_test_case(
                test_file,
                run_id,
                config=config,
                store=store,
                save_artifacts=force_save,
                base_time=started_at,
            )
        except Exception as exc:
            logger.warning("Test file %s errored: %s", display_path(test_file), exc)
            result = error_result(test_file, run_id, exc)
        report.results.append(result)
        if on_result is not None:
            on_result(result)

    report.exit_code = exit_code_for(report.results)
    return report
