"""Error formatter with dual-mode output (annotated human and CI concise).

Human mode prints compiler-style annotated errors pointing into the test
file; CI mode prints one ``file:line:col -- field: message`` line each.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agenteval.loader.validator import ValidationErrorDetail


ERROR_CODES: dict[str, str] = {
    "extra_forbidden": "E001",
    "missing": "E002",
    "value_error": "E003",
    "greater_than_equal": "E003",
    "string_type": "E004",
    "int_type": "E004",
    "int_parsing": "E004",
    "bool_type": "E004",
    "bool_parsing": "E004",
    "list_type": "E004",
    "dict_type": "E004",
    "model_type": "E004",
    "literal_error": "E005",
    "yaml_syntax_error": "E006",
    "empty_file": "E007",
    "empty_input": "E007",
    "unknown_assertion_type": "E008",
    "replay_invalid": "E009",
    "replay_unreadable": "E009",
}

ERROR_DESCRIPTIONS: dict[str, str] = {
    "E001": "unknown field",
    "E002": "required field missing",
    "E003": "invalid value",
    "E004": "type mismatch",
    "E005": "invalid literal",
    "E006": "YAML syntax error",
    "E007": "empty input",
    "E008": "unsupported assertion type",
    "E009": "invalid replay bundle",
}


def _ci_env() -> bool:
    return os.environ.get("CI", "").lower() in ("true", "1", "yes")


class ErrorFormatter:
    """Formats validation errors for human or CI consumption.

    Args:
        ci_mode: Force CI output on or off. None reads the CI env var.
    """

    def __init__(self, ci_mode: bool | None = None) -> None:
        self.ci_mode = _ci_env() if ci_mode is None else ci_mode

    @staticmethod
    def error_code(error_type: str) -> str:
        if error_type in ERROR_CODES:
            return ERROR_CODES[error_type]
        for key, code in ERROR_CODES.items():
            if key in error_type:
                return code
        return "E999"

    def format_error(
        self,
        error: ValidationErrorDetail,
        source_lines: list[str],
        filename: str,
    ) -> str:
        if self.ci_mode:
            return self._format_ci(error, filename)
        return self._format_annotated(error, source_lines, filename)

    def _format_ci(self, error: ValidationErrorDetail, filename: str) -> str:
        line = error.line or 0
        col = error.col or 0
        hint = f" ({error.suggestion})" if error.suggestion else ""
        return f"{filename}:{line}:{col} -- {error.field}: {error.message}{hint}"

    def _format_annotated(
        self,
        error: ValidationErrorDetail,
        source_lines: list[str],
        filename: str,
    ) -> str:
        """Render an error like::

            error[E001]: unknown field
              --> cases/a/test.yaml:3:1
               |
             3 | asertions:
               | ^^^^^^^^^ Extra inputs are not permitted
               |
               = help: Did you mean 'assertions'?
        """
        code = self.error_code(error.type)
        out = [f"error[{code}]: {ERROR_DESCRIPTIONS.get(code, 'validation error')}"]

        if error.line is None:
            out += [f"  --> {filename}", "   |", f"   | {error.field}: {error.message}", "   |"]
        else:
            out += [f"  --> {filename}:{error.line}:{error.col or 1}", "   |"]
            idx = error.line - 1
            if 0 <= idx < len(source_lines):
                src = source_lines[idx].rstrip()
                num = str(error.line)
                gutter = " " * len(num)
                out.append(f" {num} | {src}")
                key = error.field.split(".")[-1]
                start = src.find(key)
                if start >= 0:
                    out.append(f" {gutter} | {' ' * start}{'^' * len(key)} {error.message}")
                else:
                    out.append(f" {gutter} | {error.message}")
            else:
                out.append(f"   | {error.message}")
            out.append("   |")

        if error.suggestion:
            out.append(f"   = help: {error.suggestion}")
        return "\n".join(out)

    def format_all(
        self,
        errors: list[ValidationErrorDetail],
        source: str,
        filename: str,
    ) -> str:
        lines = source.splitlines()
        return "\n\n".join(self.format_error(e, lines, filename) for e in errors)

    def print_errors(
        self,
        errors: list[ValidationErrorDetail],
        source: str,
        filename: str,
    ) -> None:
        print(self.format_all(errors, source, filename), file=sys.stderr)

    def print_success(self, filename: str) -> None:
        print(f"  {filename} ... valid")
