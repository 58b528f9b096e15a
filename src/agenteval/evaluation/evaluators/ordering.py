"""Ordering evaluators -- relative event order and stop-after-success windows."""

from __future__ import annotations

from pydantic import Field

from agenteval.evaluation.evaluators.base import (
    AssertionType,
    BaseEvaluator,
    CheckOutcome,
    CheckParams,
    StrList,
    outcome,
)
from agenteval.evaluation.selectors import EventSelector, first_match, matches
from agenteval.models.trace import Event, Trace


def _selector_dump(selector: EventSelector) -> dict:
    return selector.model_dump(exclude_unset=True)


def _presence(event: Event | None) -> str:
    return "found" if event is not None else "missing"


class ToolCallOrderParams(CheckParams):
    before: EventSelector
    after: EventSelector


class ToolCallOrderEvaluator(BaseEvaluator[ToolCallOrderParams]):
    """Passes when the first 'before' event precedes the first 'after' event."""

    assertion_type = AssertionType.tool_call_order
    params_model = ToolCallOrderParams

    def check(self, trace: Trace, params: ToolCallOrderParams) -> CheckOutcome:
        before_label = params.before.label
        after_label = params.after.label
        before_event = first_match(trace.events, params.before)
        after_event = first_match(trace.events, params.after)

        if before_event is None or after_event is None:
            return outcome(
                False,
                "Missing required events for ordering check "
                f"({before_label}: {_presence(before_event)}, "
                f"{after_label}: {_presence(after_event)})",
                {
                    "before": before_label,
                    "after": after_label,
                    "before_found": before_event is not None,
                    "after_found": after_event is not None,
                },
                [e for e in (before_event, after_event) if e is not None],
            )

        return outcome(
            before_event.seq < after_event.seq,
            f"Expected {before_label} before {after_label} "
            f"(seq {before_event.seq} vs {after_event.seq})",
            {
                "before_seq": before_event.seq,
                "after_seq": after_event.seq,
            },
            [before_event, after_event],
        )


class StopAfterSuccessParams(CheckParams):
    success_event: EventSelector
    forbid_following: EventSelector
    allowed_following_tools: StrList = Field(default_factory=list)


class StopAfterSuccessEvaluator(BaseEvaluator[StopAfterSuccessParams]):
    """Fails when forbidden events follow the first success event."""

    assertion_type = AssertionType.stop_after_success
    params_model = StopAfterSuccessParams

    def check(self, trace: Trace, params: StopAfterSuccessParams) -> CheckOutcome:
        allowed = params.allowed_following_tools
        success = first_match(trace.events, params.success_event)
        if success is None:
            return outcome(
                False,
                f"No success_event matched {params.success_event.label}",
                {
                    "success_event_selector": _selector_dump(params.success_event),
                    "forbid_following_selector": _selector_dump(params.forbid_following),
                },
            )

        violations = [
            e
            for e in trace.events
            if e.seq > success.seq
            and matches(e, params.forbid_following)
            and e.data.get("tool") not in allowed
        ]

        if violations:
            names: list[str] = []
            for e in violations:
                name = str(e.data.get("tool") or e.type)
                if name not in names:
                    names.append(name)
            return outcome(
                False,
                f"Found forbidden events after success_event: {', '.join(names)}",
                {
                    "success_event_id": success.event_id,
                    "success_event_seq": success.seq,
                    "forbid_following_selector": _selector_dump(params.forbid_following),
                    "allowed_following_tools": allowed,
                    "violations": [
                        {
                            "event_id": e.event_id,
                            "seq": e.seq,
                            "type": e.type,
                            "tool": e.data.get("tool"),
                        }
                        for e in violations
                    ],
                },
                [success, *violations],
            )

        return outcome(
            True,
            "No forbidden events after success_event",
            {
                "success_event_id": success.event_id,
                "success_event_seq": success.seq,
                "allowed_following_tools": allowed,
            },
            [success],
        )
