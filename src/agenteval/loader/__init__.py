"""agenteval YAML loader - parsing, validation, and error reporting."""

from agenteval.loader.errors import ErrorFormatter
from agenteval.loader.validator import (
    ValidationErrorDetail,
    check_assertion_types,
    validate_spec,
    validate_spec_file,
    validate_spec_string,
)
from agenteval.loader.yaml_parser import (
    YAMLParseError,
    parse_yaml_file,
    parse_yaml_with_lines,
)

__all__ = [
    "ErrorFormatter",
    "ValidationErrorDetail",
    "YAMLParseError",
    "check_assertion_types",
    "parse_yaml_file",
    "parse_yaml_with_lines",
    "validate_spec",
    "validate_spec_file",
    "validate_spec_string",
]
