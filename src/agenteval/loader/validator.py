"""Test spec validation pipeline combining YAML parsing with Pydantic validation.

Two-stage validation: first parse YAML with line tracking, then validate
against the TestSpec model. Errors from both stages carry source
positions and are collected for batch reporting.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from agenteval.evaluation.evaluators import AssertionType
from agenteval.loader.yaml_parser import (
    YAMLParseError,
    parse_yaml_file,
    parse_yaml_with_lines,
)
from agenteval.models.spec import (
    AdapterInput,
    AssertionSpec,
    Expected,
    ReportingOptions,
    ScenarioOverrides,
    TestSpec,
)

# Known field names per nesting level, used for typo suggestions
_FIELDS_BY_SECTION: dict[str, list[str]] = {
    "": list(TestSpec.model_fields),
    "adapter_input": list(AdapterInput.model_fields),
    "scenario": list(ScenarioOverrides.model_fields),
    "assertions": list(AssertionSpec.model_fields),
    "expected": list(Expected.model_fields),
    "reporting": list(ReportingOptions.model_fields),
}

ASSERTION_TYPES: list[str] = [t.value for t in AssertionType]


@dataclass
class ValidationErrorDetail:
    """A single validation error with source position and context.

    Attributes:
        field: Dotted path of the offending field, or '<yaml>'.
        message: Human-readable error description.
        type: Pydantic error type string (e.g. 'missing', 'extra_forbidden').
        line: 1-indexed line number in the source YAML, or None if unknown.
        col: 1-indexed column number in the source YAML, or None if unknown.
        suggestion: 'Did you mean X?' hint for typos, or None.
        input_value: The invalid input value, if available.
    """

    field: str
    message: str
    type: str
    line: int | None = None
    col: int | None = None
    suggestion: str | None = None
    input_value: Any = field(default=None)


def _find_line_for_field(
    field_path: str,
    line_map: dict[str, tuple[int, int]],
) -> tuple[int | None, int | None]:
    """Resolve a field path to a source position, falling back to its parents."""
    parts = field_path.split(".")
    while parts:
        prefix = ".".join(parts)
        if prefix in line_map:
            return line_map[prefix]
        parts.pop()
    return None, None


def _suggest(name: str, candidates: list[str]) -> str | None:
    matches = difflib.get_close_matches(name, candidates, n=1, cutoff=0.6)
    if matches:
        return f"Did you mean '{matches[0]}'?"
    return None


def _field_suggestion(loc: tuple[str | int, ...]) -> str | None:
    if not loc:
        return None
    section = str(loc[0]) if len(loc) > 1 else ""
    candidates = _FIELDS_BY_SECTION.get(section)
    if candidates is None:
        return None
    return _suggest(str(loc[-1]), candidates)


def validate_spec(
    raw_data: dict[str, Any],
    line_map: dict[str, tuple[int, int]],
    strict: bool = False,
) -> tuple[TestSpec | None, list[ValidationErrorDetail]]:
    """Validate parsed YAML data against the TestSpec model.

    Args:
        raw_data: Parsed YAML mapping.
        line_map: Dotted key paths to (line, col) positions.
        strict: Also reject assertion types that have no evaluator.

    Returns:
        Tuple of (TestSpec, []) on success, or (None, errors) on failure.
    """
    try:
        spec = TestSpec.model_validate(raw_data)
    except ValidationError as e:
        errors: list[ValidationErrorDetail] = []
        for err in e.errors():
            loc = tuple(err.get("loc", ()))
            field_path = ".".join(str(part) for part in loc)
            error_type = err.get("type", "unknown")
            line, col = _find_line_for_field(field_path, line_map)
            suggestion = _field_suggestion(loc) if error_type == "extra_forbidden" else None
            errors.append(
                ValidationErrorDetail(
                    field=field_path,
                    message=err.get("msg", "Validation error"),
                    type=error_type,
                    line=line,
                    col=col,
                    suggestion=suggestion,
                    input_value=err.get("input"),
                )
            )
        return None, errors

    if strict:
        type_errors = check_assertion_types(spec, line_map)
        if type_errors:
            return None, type_errors
    return spec, []


def check_assertion_types(
    spec: TestSpec,
    line_map: dict[str, tuple[int, int]],
) -> list[ValidationErrorDetail]:
    """Report assertions whose type has no evaluator.

    The runner still accepts such files and fails the assertion; this is
    the stricter view used by ``agenteval validate``.
    """
    errors: list[ValidationErrorDetail] = []
    for idx, assertion in enumerate(spec.assertions):
        if assertion.type in ASSERTION_TYPES:
            continue
        field_path = f"assertions.{idx}.type"
        line, col = _find_line_for_field(field_path, line_map)
        errors.append(
            ValidationErrorDetail(
                field=field_path,
                message=f"Unsupported assertion type: {assertion.type}",
                type="unknown_assertion_type",
                line=line,
                col=col,
                suggestion=_suggest(assertion.type, ASSERTION_TYPES),
                input_value=assertion.type,
            )
        )
    return errors


def _yaml_error(e: YAMLParseError) -> list[ValidationErrorDetail]:
    return [
        ValidationErrorDetail(
            field="<yaml>",
            message=e.message,
            type="yaml_syntax_error",
            line=e.line,
            col=e.column,
        )
    ]


def validate_spec_file(
    filepath: Path,
    strict: bool = False,
) -> tuple[TestSpec | None, list[ValidationErrorDetail]]:
    """Validate a test spec YAML file, returning all errors at once."""
    try:
        raw_data, line_map = parse_yaml_file(filepath)
    except YAMLParseError as e:
        return None, _yaml_error(e)

    if raw_data is None:
        return None, [
            ValidationErrorDetail(
                field="<yaml>",
                message="File is empty or does not contain a mapping",
                type="empty_file",
            )
        ]
    return validate_spec(raw_data, line_map, strict=strict)


def validate_spec_string(
    source: str,
    filename: str = "<string>",
    strict: bool = False,
) -> tuple[TestSpec | None, list[ValidationErrorDetail]]:
    """Validate a test spec given as a YAML string."""
    try:
        raw_data, line_map = parse_yaml_with_lines(source, filename=filename)
    except YAMLParseError as e:
        return None, _yaml_error(e)

    if raw_data is None:
        return None, [
            ValidationErrorDetail(
                field="<yaml>",
                message="Input is empty or does not contain a mapping",
                type="empty_input",
            )
        ]
    return validate_spec(raw_data, line_map, strict=strict)
