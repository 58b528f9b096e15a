"""YAML parser with line tracking for test file error reporting.

A PyYAML SafeLoader subclass records where every mapping key was
written, so validation errors on a test file can point at the exact
line the author needs to fix.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class YAMLParseError(Exception):
    """Raised when YAML syntax cannot be parsed.

    Attributes:
        message: Human-readable description of the syntax error.
        line: 1-indexed line number where the error occurred.
        column: 1-indexed column number where the error occurred.
        filename: Name of the file being parsed, or '<string>'.
    """

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        filename: str = "<string>",
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.filename = filename
        super().__init__(message)


class LineTrackingLoader(yaml.SafeLoader):
    """SafeLoader that maps dotted key paths to (line, column), 1-indexed.

    List items contribute their index to the path, so the second
    assertion's ``params`` key is recorded as ``assertions.1.params``.
    """

    def __init__(self, stream: str) -> None:
        super().__init__(stream)
        self.line_map: dict[str, tuple[int, int]] = {}
        self._path: list[str] = []

    def _nested(self, segment: str, node: yaml.Node, deep: bool) -> Any:
        self._path.append(segment)
        try:
            return self.construct_object(node, deep=deep)
        finally:
            self._path.pop()

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        self.flatten_mapping(node)
        mapping: dict[Any, Any] = {}
        for key_node, value_node in node.value:
            key = self.construct_object(key_node, deep=deep)
            if isinstance(key, str):
                mark = key_node.start_mark
                self.line_map[".".join([*self._path, key])] = (mark.line + 1, mark.column + 1)
            if isinstance(key, str) and isinstance(
                value_node, (yaml.MappingNode, yaml.SequenceNode)
            ):
                mapping[key] = self._nested(key, value_node, deep)
            else:
                mapping[key] = self.construct_object(value_node, deep=deep)
        return mapping

    def construct_sequence(self, node: yaml.SequenceNode, deep: bool = False) -> list[Any]:
        return [
            self._nested(str(idx), child, deep)
            if isinstance(child, (yaml.MappingNode, yaml.SequenceNode))
            else self.construct_object(child, deep=deep)
            for idx, child in enumerate(node.value)
        ]

    def construct_yaml_map(self, node: yaml.MappingNode) -> Any:
        yield self.construct_mapping(node, deep=True)

    def construct_yaml_seq(self, node: yaml.SequenceNode) -> Any:
        yield self.construct_sequence(node, deep=True)


LineTrackingLoader.add_constructor("tag:yaml.org,2002:map", LineTrackingLoader.construct_yaml_map)
LineTrackingLoader.add_constructor("tag:yaml.org,2002:seq", LineTrackingLoader.construct_yaml_seq)


def parse_yaml_with_lines(
    source: str,
    filename: str = "<string>",
) -> tuple[dict | None, dict[str, tuple[int, int]]]:
    """Parse a YAML string and return (data, line_map).

    Returns (None, {}) for empty, comment-only, or non-mapping documents.

    Raises:
        YAMLParseError: If the YAML contains syntax errors.
    """
    loader = LineTrackingLoader(source)
    try:
        data = loader.get_single_data()
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise YAMLParseError(
            message=str(e),
            line=mark.line + 1 if mark is not None else None,
            column=mark.column + 1 if mark is not None else None,
            filename=filename,
        ) from e
    finally:
        loader.dispose()

    if not isinstance(data, dict):
        return None, {}
    return data, loader.line_map


def parse_yaml_file(filepath: Path) -> tuple[dict | None, dict[str, tuple[int, int]]]:
    """Parse a YAML file and return (data, line_map).

    Raises:
        YAMLParseError: If the file contains YAML syntax errors.
        FileNotFoundError: If the file does not exist.
    """
    content = filepath.read_text(encoding="utf-8")
    return parse_yaml_with_lines(content, filename=str(filepath))
