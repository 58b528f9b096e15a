"""agenteval validate CLI command for test file validation.

Validates test.yaml files against the TestSpec schema and, when the
replay bundle they reference can be found, checks its structure too.
All errors are reported at once with annotated or CI-friendly output.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from agenteval.loader.errors import ErrorFormatter
from agenteval.loader.validator import ValidationErrorDetail, validate_spec_file
from agenteval.models.config import find_project_root, load_project_config
from agenteval.models.spec import TestSpec
from agenteval.replay.validator import ReplayValidationError, validate_replay
from agenteval.runner import discover_test_files, display_path


def check_replay(test_file: Path, spec: TestSpec) -> tuple[Path, list[ValidationErrorDetail]]:
    """Validate the replay bundle a spec points at. Returns (replay_path, errors)."""
    replay_path = (test_file.parent / spec.adapter_input.replay_file).resolve()
    try:
        replay = json.loads(replay_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        return replay_path, [
            ValidationErrorDetail(
                field="adapter_input.replay_file",
                message=f"Cannot read replay bundle: {exc}",
                type="replay_unreadable",
            )
        ]

    try:
        validate_replay(replay)
    except ReplayValidationError as exc:
        loc = f"script.{exc.step_index}" if exc.step_index is not None else "<replay>"
        return replay_path, [
            ValidationErrorDetail(field=loc, message=exc.message, type="replay_invalid")
        ]
    return replay_path, []


def validate(
    test_files: Optional[list[str]] = typer.Argument(
        None, help="Test files or directories to validate (default: current directory)"
    ),
    ci: bool = typer.Option(False, "--ci", help="CI-friendly concise output"),
) -> None:
    """Validate test YAML files and the replay bundles they reference.

    Exits with code 0 if every file is valid, 1 if any has errors.
    """
    formatter = ErrorFormatter(ci_mode=ci)
    config = load_project_config(find_project_root())

    files: list[Path] = []
    for target in test_files or ["."]:
        p = Path(target)
        if not p.exists():
            typer.echo(f"Error: File not found: {target}", err=True)
            raise typer.Exit(code=1)
        files.extend(discover_test_files(p, config.test_file_name))

    if not files:
        typer.echo(f"No {config.test_file_name} files found.")
        raise typer.Exit(code=1)

    valid_count = 0
    for filepath in files:
        shown = display_path(filepath)
        spec, errors = validate_spec_file(filepath, strict=True)
        if errors:
            source = filepath.read_text(encoding="utf-8")
            typer.echo(formatter.format_all(errors, source, shown), err=not ci)
            continue

        assert spec is not None
        replay_path, replay_errors = check_replay(filepath, spec)
        if replay_errors:
            typer.echo(
                formatter.format_all(replay_errors, "", display_path(replay_path)),
                err=not ci,
            )
            continue

        valid_count += 1
        formatter.print_success(shown)

    typer.echo(f"\n{valid_count}/{len(files)} test files valid")
    if valid_count < len(files):
        raise typer.Exit(code=1)
