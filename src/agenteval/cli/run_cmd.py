"""agenteval run -- evaluate replay-backed test cases and report verdicts.

Discovers test files, runs each through the runner, renders results as
they complete (or emits JSON), and exits with the runner's code:
0 all passed, 1 any failed, 2 any errored, 3 nothing found.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console

from agenteval.cli.output import output_json, render_run_summary, render_test_result
from agenteval.logging_config import resolve_log_level, setup_logging
from agenteval.models.config import find_project_root, load_project_config
from agenteval.runner import EXIT_ERROR, EXIT_NO_TESTS, run_tests

console = Console()
err_console = Console(stderr=True)


def run(
    path: str = typer.Argument(..., help="Path to a test.yaml or a directory of test cases"),
    format_json: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
    save_artifacts: bool = typer.Option(
        False, "--save-artifacts", help="Persist trace and result JSON for every test case"
    ),
    artifacts_dir: Optional[str] = typer.Option(
        None, "--artifacts-dir", help="Directory for persisted artifacts"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"
    ),
) -> None:
    """Run replay-backed test cases and display results."""
    target = Path(path)
    project_root = find_project_root(target)
    try:
        config = load_project_config(project_root)
    except (ValidationError, yaml.YAMLError) as exc:
        err_console.print(f"[bold red]Invalid project config:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_ERROR)

    setup_logging(resolve_log_level(log_level, config.log_level))

    report = run_tests(
        target,
        config=config,
        save_artifacts=True if save_artifacts else None,
        artifacts_dir=Path(artifacts_dir) if artifacts_dir else project_root / config.artifacts_dir,
        on_result=None if format_json else lambda r: render_test_result(r, console),
    )

    if report.exit_code == EXIT_NO_TESTS:
        err_console.print(f"No test files found at {path}")
        raise typer.Exit(code=EXIT_NO_TESTS)

    if format_json:
        output_json(report)
    else:
        render_run_summary(report, console)

    raise typer.Exit(code=report.exit_code)
