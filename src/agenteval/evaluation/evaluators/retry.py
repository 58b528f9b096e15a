"""Retry policy evaluator -- error types and retry budget for one tool."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from agenteval.evaluation.evaluators.base import (
    AssertionType,
    BaseEvaluator,
    CheckOutcome,
    CheckParams,
    StrList,
    outcome,
)
from agenteval.models.trace import Trace


class RetryPolicyParams(CheckParams):
    tool: str
    max_retries: int
    retry_on_error_types: StrList = Field(default_factory=list)


def _unique(values: list[Any]) -> list[Any]:
    seen: list[Any] = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


class RetryPolicyRespectedEvaluator(BaseEvaluator[RetryPolicyParams]):
    """Retries (calls - 1) stay within max_retries for allowed error types.

    Requires at least one error event for the tool: a run that never
    failed cannot demonstrate a retry policy.
    """

    assertion_type = AssertionType.retry_policy_respected
    params_model = RetryPolicyParams

    def check(self, trace: Trace, params: RetryPolicyParams) -> CheckOutcome:
        tool = params.tool
        errors = [e for e in trace.events_of_type("error") if e.data.get("tool") == tool]
        if not errors:
            return outcome(
                False,
                f"No error events found for tool {tool}",
                {"tool": tool, "error_events": 0},
            )

        error_types = _unique([e.data.get("error_type") for e in errors])
        allowed_types = params.retry_on_error_types
        if allowed_types:
            disallowed = [t for t in error_types if t not in allowed_types]
            if disallowed:
                return outcome(
                    False,
                    "Found error types outside retry policy: "
                    f"{', '.join(str(t) for t in disallowed)}",
                    {
                        "tool": tool,
                        "retry_on_error_types": allowed_types,
                        "error_types_seen": error_types,
                    },
                    errors,
                )

        calls = trace.tool_calls(tool)
        retry_count = max(len(calls) - 1, 0)
        observed = {
            "tool": tool,
            "tool_call_count": len(calls),
            "retry_count": retry_count,
            "max_retries": params.max_retries,
        }
        if retry_count > params.max_retries:
            return outcome(
                False,
                f"Retry count {retry_count} exceeds max_retries {params.max_retries} for {tool}",
                observed,
                [*calls, *errors],
            )

        return outcome(
            True,
            f"Retry policy respected for {tool}",
            {**observed, "error_types_seen": error_types},
            [*calls, *errors],
        )
