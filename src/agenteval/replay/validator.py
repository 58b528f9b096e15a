"""Structural validation of raw replay bundles.

A replay bundle is the JSON document recorded from a prior agent run.
Validation runs before normalization and fails fast with a
ReplayValidationError naming the first structural problem found; a
bundle that fails here never produces a partial trace.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agenteval.models.trace import EVENT_TYPES

REQUIRED_TOP_LEVEL_FIELDS: tuple[str, ...] = (
    "schema_version",
    "scenario",
    "input_messages",
    "script",
    "status",
    "metrics",
)

VALID_TRIGGERS = ("user_message", "scheduler")
VALID_STATUSES = ("success", "failure", "error")


class ReplayValidationError(ValueError):
    """Raised when a replay bundle is structurally invalid.

    Attributes:
        message: Human-readable description of the problem.
        step_index: 0-indexed script step that caused the error, if any.
    """

    def __init__(self, message: str, step_index: int | None = None) -> None:
        self.message = message
        self.step_index = step_index
        super().__init__(message)


def validate_replay(replay: Any) -> None:
    """Validate the structure of a raw replay bundle.

    Raises:
        ReplayValidationError: On the first structural problem found.
    """
    if not isinstance(replay, Mapping):
        raise ReplayValidationError("Replay bundle must be a JSON object")

    missing = [k for k in REQUIRED_TOP_LEVEL_FIELDS if k not in replay]
    if missing:
        raise ReplayValidationError(
            f"Replay bundle missing required fields: {', '.join(missing)}"
        )

    _validate_scenario(replay["scenario"])
    if not isinstance(replay["input_messages"], list):
        raise ReplayValidationError("Replay input_messages must be an array")
    _validate_script(replay["script"])
    _validate_status(replay)
    _validate_metrics(replay["metrics"])

    capabilities = replay.get("capabilities")
    if capabilities is not None and not isinstance(capabilities, Mapping):
        raise ReplayValidationError("Replay capabilities must be an object")


def _validate_scenario(scenario: Any) -> None:
    if not isinstance(scenario, Mapping):
        raise ReplayValidationError("Replay scenario must be an object")

    trigger = scenario.get("trigger")
    if trigger not in VALID_TRIGGERS:
        raise ReplayValidationError(
            "Replay scenario.trigger must be 'user_message' or 'scheduler'"
        )
    if trigger == "scheduler" and scenario.get("scheduler_context") is None:
        raise ReplayValidationError(
            "Replay scenario.scheduler_context is required when trigger is 'scheduler'"
        )


def _validate_script(script: Any) -> None:
    if not isinstance(script, list):
        raise ReplayValidationError("Replay script must be an array")

    seen_call_ids: set[Any] = set()
    for idx, step in enumerate(script):
        if not isinstance(step, Mapping):
            raise ReplayValidationError(
                f"Replay script step {idx} must be an object", step_index=idx
            )

        step_type = step.get("type")
        if not step_type:
            raise ReplayValidationError(
                f"Replay script step {idx} missing required field: type",
                step_index=idx,
            )

        if step_type == "tool_call":
            _require_fields(step, idx, "tool_call", ("tool", "call_id"), non_null=True)
            seen_call_ids.add(_scalar_call_id(step, idx, "tool_call"))
        elif step_type == "tool_result":
            _require_fields(step, idx, "tool_result", ("tool", "call_id", "success"))
            if _scalar_call_id(step, idx, "tool_result") not in seen_call_ids:
                raise ReplayValidationError(
                    f"Replay tool_result step {idx} references unknown tool "
                    f"call_id {step['call_id']!r}",
                    step_index=idx,
                )
        elif step_type == "error":
            scoped_to_tool = (
                step.get("scope") == "tool"
                or step.get("tool") is not None
                or step.get("call_id") is not None
            )
            call_id = step.get("call_id")
            if (
                scoped_to_tool
                and call_id is not None
                and _scalar_call_id(step, idx, "error") not in seen_call_ids
            ):
                raise ReplayValidationError(
                    f"Replay error step {idx} references unknown tool call_id {call_id!r}",
                    step_index=idx,
                )
        elif step_type not in EVENT_TYPES:
            raise ReplayValidationError(
                f"Replay script step {idx} has unsupported type {step_type!r}",
                step_index=idx,
            )


def _require_fields(
    step: Mapping[str, Any],
    idx: int,
    kind: str,
    fields: tuple[str, ...],
    *,
    non_null: bool = False,
) -> None:
    """Check required step fields; *non_null* also rejects null values."""
    for name in fields:
        present = step.get(name) is not None if non_null else name in step
        if not present:
            raise ReplayValidationError(
                f"Replay {kind} step {idx} missing required field: {name}",
                step_index=idx,
            )


def _scalar_call_id(step: Mapping[str, Any], idx: int, kind: str) -> Any:
    call_id = step["call_id"]
    if not isinstance(call_id, (str, int, float, bool)):
        raise ReplayValidationError(
            f"Replay {kind} step {idx} call_id must be a string or number",
            step_index=idx,
        )
    return call_id


def _validate_status(replay: Mapping[str, Any]) -> None:
    status = replay["status"]
    if status not in VALID_STATUSES:
        raise ReplayValidationError(
            f"Replay status must be one of {', '.join(VALID_STATUSES)}, got {status!r}"
        )
    if status != "success":
        return

    message = "Replay final_output.content is required when status is 'success'"
    explicit = replay.get("final_output")
    if explicit is not None:
        if not (isinstance(explicit, Mapping) and "content" in explicit):
            raise ReplayValidationError(message)
        return

    has_final_step = any(
        isinstance(step, Mapping)
        and step.get("type") == "final_output"
        and "content" in step
        for step in replay["script"]
    )
    if not has_final_step:
        raise ReplayValidationError(message)


def _validate_metrics(metrics: Any) -> None:
    if not isinstance(metrics, Mapping):
        raise ReplayValidationError("Replay metrics must be an object")
    if "timing_ms_total" not in metrics:
        raise ReplayValidationError("Replay metrics.timing_ms_total is required")
