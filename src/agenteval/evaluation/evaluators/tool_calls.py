"""Tool call evaluators -- call counts, call bounds and argument matching."""

from __future__ import annotations

import json
import re
from typing import Any

import jmespath
from pydantic import Field, model_validator

from agenteval.evaluation.evaluators.base import (
    AssertionType,
    BaseEvaluator,
    CheckOutcome,
    CheckParams,
    StrList,
    outcome,
)
from agenteval.models.trace import Event, Trace


class MustCallToolParams(CheckParams):
    tool: str
    min_calls: int = 1


class MustCallToolEvaluator(BaseEvaluator[MustCallToolParams]):
    """Passes when the tool was called at least min_calls times."""

    assertion_type = AssertionType.must_call_tool
    params_model = MustCallToolParams

    def check(self, trace: Trace, params: MustCallToolParams) -> CheckOutcome:
        calls = trace.tool_calls(params.tool)
        return outcome(
            len(calls) >= params.min_calls,
            f"Expected {params.tool} >= {params.min_calls}, got {len(calls)}",
            {"matches": len(calls)},
            calls,
        )


class MustNotCallToolParams(CheckParams):
    tool: str


class MustNotCallToolEvaluator(BaseEvaluator[MustNotCallToolParams]):
    assertion_type = AssertionType.must_not_call_tool
    params_model = MustNotCallToolParams

    def check(self, trace: Trace, params: MustNotCallToolParams) -> CheckOutcome:
        calls = trace.tool_calls(params.tool)
        return outcome(
            not calls,
            f"Expected no {params.tool} calls, got {len(calls)}",
            {"matches": len(calls)},
            calls,
        )


class MaxToolCallsParams(CheckParams):
    tool: str | None = None
    max: int | None = None
    max_total: int | None = None

    @model_validator(mode="after")
    def check_bound_present(self) -> MaxToolCallsParams:
        if self.tool is not None and self.max is None:
            raise ValueError("'max' is required when 'tool' is given")
        if self.tool is None and self.max_total is None:
            raise ValueError("'max_total' is required when no 'tool' is given")
        return self


class MaxToolCallsEvaluator(BaseEvaluator[MaxToolCallsParams]):
    """Bounds calls to one tool (tool + max) or to all tools (max_total)."""

    assertion_type = AssertionType.max_tool_calls
    params_model = MaxToolCallsParams

    def check(self, trace: Trace, params: MaxToolCallsParams) -> CheckOutcome:
        if params.tool is not None:
            calls = trace.tool_calls(params.tool)
            return outcome(
                len(calls) <= params.max,
                f"Expected {params.tool} calls <= {params.max}, got {len(calls)}",
                {"matches": len(calls), "max": params.max},
                calls,
            )

        calls = trace.tool_calls()
        return outcome(
            len(calls) <= params.max_total,
            f"Expected total tool calls <= {params.max_total}, got {len(calls)}",
            {"matches": len(calls), "max_total": params.max_total},
            calls,
        )


class ArgsMatchRules(CheckParams):
    required_keys: StrList = Field(default_factory=list)
    args_contains: dict[str, Any] = Field(default_factory=dict)
    regex: dict[str, str] = Field(default_factory=dict)


class ToolArgsMatchParams(CheckParams):
    tool: str
    match: ArgsMatchRules = Field(default_factory=ArgsMatchRules)


def lookup_arg(args: dict[str, Any], key: str) -> Any:
    """Resolve *key* in tool args; dotted keys are tried as nested paths first.

    Each dotted segment is quoted so keys with dashes or spaces stay valid
    JMESPath identifiers. Falls back to a literal top-level key.
    """
    if "." in key:
        expression = ".".join(json.dumps(part) for part in key.split("."))
        value = jmespath.search(expression, args)
        if value is not None:
            return value
    return args.get(key)


def _arg_matches_expected(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str) and isinstance(expected, str):
        return expected.lower() in actual.lower()
    return actual == expected


def _args_mismatches(args: Any, rules: ArgsMatchRules) -> list[str]:
    """Return every reason *args* fail *rules* (empty when they match)."""
    if not isinstance(args, dict):
        return [f"args is not an object ({type(args).__name__})"]

    reasons: list[str] = []
    for key in rules.required_keys:
        if key not in args:
            reasons.append(f"missing required key {key}")

    for key, expected in rules.args_contains.items():
        actual = lookup_arg(args, key)
        if actual is None:
            reasons.append(f"missing key {key} for args_contains")
        elif not _arg_matches_expected(actual, expected):
            reasons.append(f"args_contains mismatch for {key}")

    for key, pattern in rules.regex.items():
        actual = lookup_arg(args, key)
        if actual is None:
            reasons.append(f"missing key {key} for regex")
            continue
        text = actual if isinstance(actual, str) else json.dumps(actual)
        if not re.search(pattern, text, re.IGNORECASE):
            reasons.append(f"regex mismatch for {key}")

    return reasons


class ToolArgsMatchEvaluator(BaseEvaluator[ToolArgsMatchParams]):
    """Passes on the first call of the tool whose args satisfy every rule."""

    assertion_type = AssertionType.tool_args_match
    params_model = ToolArgsMatchParams

    def check(self, trace: Trace, params: ToolArgsMatchParams) -> CheckOutcome:
        tool = params.tool
        calls = trace.tool_calls(tool)
        if not calls:
            return outcome(
                False,
                f"No {tool} tool_call events found",
                {"tool": tool, "calls_seen": 0},
            )

        per_event_failures: list[dict[str, Any]] = []
        matched: Event | None = None
        for event in calls:
            reasons = _args_mismatches(event.data.get("args") or {}, params.match)
            if not reasons:
                matched = event
                break
            per_event_failures.append({"event_id": event.event_id, "reasons": reasons})

        if matched is not None:
            return outcome(
                True,
                f"Found matching {tool} tool_call args",
                {
                    "tool": tool,
                    "matched_event_id": matched.event_id,
                    "matched_args": matched.data.get("args") or {},
                },
                [matched],
            )

        summary = " | ".join(
            f"{f['event_id']}: {', '.join(f['reasons'])}" for f in per_event_failures
        )
        return outcome(
            False,
            f"No {tool} calls matched args constraints ({summary})",
            {
                "tool": tool,
                "calls_seen": len(calls),
                "match_rules": params.match.model_dump(),
                "per_event_failures": per_event_failures,
            },
            calls,
        )
