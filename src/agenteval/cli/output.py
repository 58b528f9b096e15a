"""Rich terminal output layer for test case results.

Renders one block per test case (status line, adapter, trace summary,
assertion verdicts with evidence for anything that did not pass), a
run summary, and the JSON form used by ``--json``.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from agenteval.models.result import TestCaseResult
    from agenteval.runner import RunReport


_STATUS_STYLES: dict[str, str] = {
    "pass": "bold green",
    "fail": "bold red",
    "error": "bold bright_red",
    "skip": "yellow",
}

# Observed keys worth showing inline; everything else stays in the JSON artifacts.
OBSERVED_KEYS: tuple[str, ...] = (
    "tool",
    "calls_seen",
    "matched_event_id",
    "success_event_id",
    "unsupported_urls",
    "unsupported_units",
    "violations",
    "content_units_checked",
    "matched_patterns",
    "matched_any_of",
    "matched_all_of",
    "matched_regexes",
    "bullet_count",
    "paragraph_count",
    "parsed_keys",
    "required_keys",
    "retry_count",
    "max_retries",
    "error_types_seen",
    "memory_event_count",
    "forbidden_group_ids",
    "error_events",
    "matched_success_phrase",
    "allowed_failure_phrase_matched",
    "final_output_excerpt",
)

MAX_STRING_CHARS = 140
MAX_LIST_ITEMS = 3
MAX_DICT_KEYS = 4


def truncate_value(value: Any) -> Any:
    """Shorten long strings, lists and dicts for one-line display."""
    if isinstance(value, str):
        if len(value) > MAX_STRING_CHARS:
            return value[: MAX_STRING_CHARS - 3] + "..."
        return value
    if isinstance(value, list):
        shown = [truncate_value(v) for v in value[:MAX_LIST_ITEMS]]
        if len(value) > MAX_LIST_ITEMS:
            shown.append(f"...({len(value) - MAX_LIST_ITEMS} more)")
        return shown
    if isinstance(value, dict):
        return {k: truncate_value(v) for k, v in list(value.items())[:MAX_DICT_KEYS]}
    return value


def compact_observed(observed: dict[str, Any]) -> str | None:
    """JSON of the interesting observed keys, or of everything if none match."""
    if not observed:
        return None
    subset = {k: truncate_value(v) for k, v in observed.items() if k in OBSERVED_KEYS}
    if not subset:
        subset = {k: truncate_value(v) for k, v in observed.items()}
    return json.dumps(subset, ensure_ascii=False, default=str)


def _status_label(status: str, width: int = 0) -> str:
    style = _STATUS_STYLES.get(status, "bold")
    return f"[{style}]{status.upper().ljust(width)}[/{style}]"


def render_test_result(result: TestCaseResult, console: Console) -> None:
    """Print one test case block."""
    duration = f"{result.duration_ms:g}"
    console.print(
        f"{_status_label(result.status, 5)} {escape(result.test_case_id)} ({duration}ms)"
    )
    console.print(f"  Adapter: {escape(result.adapter.name)}@{escape(result.adapter.version)}")

    if result.status == "error":
        console.print(f"  Error: {escape(str(result.evidence.get('error', '')))}")
        test_file = result.evidence.get("test_file")
        if test_file:
            console.print(f"  Test file: {escape(str(test_file))}")

    trace = result.trace_summary
    if trace.trace_id is not None:
        tools = ", ".join(f"{t.tool}({t.count})" for t in trace.tool_calls) or "-"
        console.print(
            f"  Trace: {trace.status or '-'} | Tools: {escape(tools)} | "
            f"Retries: {trace.retry_count}"
        )

    for assertion in result.assertions:
        console.print(
            f"  \\[{_status_label(assertion.status)}] "
            f"{escape(assertion.id)} ({escape(assertion.type)})"
        )
        if assertion.status == "pass":
            continue
        console.print(f"       {escape(assertion.message)}")
        refs = assertion.evidence.event_refs
        if refs:
            console.print(f"       Event refs: {escape(', '.join(refs))}")
        observed = compact_observed(assertion.observed)
        if observed:
            console.print(f"       Observed: {escape(observed)}")

    if result.status == "fail" and result.failure_categories:
        console.print(f"  Failure categories: {escape(', '.join(result.failure_categories))}")
    artifact_path = result.artifacts.get("result_path")
    if artifact_path:
        console.print(f"  Artifacts: {escape(artifact_path)}")
    console.print()


def render_run_summary(report: RunReport, console: Console) -> None:
    elapsed_ms = (datetime.now(timezone.utc) - report.started_at).total_seconds() * 1000
    console.print(f"Run {report.run_id} finished in {round(elapsed_ms)}ms")
    console.print(
        f"Summary: [green]{report.count('pass')} passed[/green], "
        f"[red]{report.count('fail')} failed[/red], "
        f"[bright_red]{report.count('error')} errors[/bright_red]"
    )


def output_json(report: RunReport) -> None:
    """Write the run report as pretty JSON to stdout.

    No Rich markup -- suitable for piping to jq or other tools.
    """
    payload = {
        "run_id": report.run_id,
        "started_at": report.started_at.astimezone(timezone.utc).isoformat(),
        "exit_code": report.exit_code,
        "results": [r.model_dump(mode="json") for r in report.results],
    }
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False))
    sys.stdout.write("\n")
