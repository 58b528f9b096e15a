"""Scheduler evaluators -- outbound message counts and task scoping."""

from __future__ import annotations

from agenteval.evaluation.evaluators.base import (
    AssertionType,
    BaseEvaluator,
    CheckOutcome,
    CheckParams,
    outcome,
)
from agenteval.models.trace import ScopeId, Trace


class SchedulerOutboundCountParams(CheckParams):
    tool: str = "outbound_send"
    min: int | None = None
    max: int | None = None
    exact: int | None = None


class SchedulerOutboundCountEvaluator(BaseEvaluator[SchedulerOutboundCountParams]):
    """Bounds outbound tool calls made by a scheduler-triggered run."""

    assertion_type = AssertionType.scheduler_outbound_count
    params_model = SchedulerOutboundCountParams

    def check(self, trace: Trace, params: SchedulerOutboundCountParams) -> CheckOutcome:
        trigger = trace.scenario.trigger
        if trigger != "scheduler":
            return outcome(
                False,
                "scheduler_outbound_count requires scheduler-triggered trace",
                {"trigger": trigger},
            )

        calls = trace.tool_calls(params.tool)
        count = len(calls)
        failures: list[str] = []
        if params.exact is not None and count != params.exact:
            failures.append(f"count {count} != exact {params.exact}")
        if params.min is not None and count < params.min:
            failures.append(f"count {count} < min {params.min}")
        if params.max is not None and count > params.max:
            failures.append(f"count {count} > max {params.max}")

        return outcome(
            not failures,
            "; ".join(failures) if failures else "Scheduler outbound count matched",
            {
                "trigger": trigger,
                "tool": params.tool,
                "count": count,
                "exact": params.exact,
                "min": params.min,
                "max": params.max,
            },
            calls,
        )


class SchedulerTaskRunsParams(CheckParams):
    trigger_must_equal: str = "scheduler"
    task_id: ScopeId | None = None


class SchedulerTaskRunsEvaluator(BaseEvaluator[SchedulerTaskRunsParams]):
    """Checks the trigger, the task id, and that events are scoped to the task."""

    assertion_type = AssertionType.scheduler_task_runs
    params_model = SchedulerTaskRunsParams

    def check(self, trace: Trace, params: SchedulerTaskRunsParams) -> CheckOutcome:
        trigger = trace.scenario.trigger
        required_trigger = params.trigger_must_equal
        task_id = trace.scenario.task_id
        if task_id is None and trace.scenario.scheduler_context:
            task_id = trace.scenario.scheduler_context.get("task_id")

        failures: list[str] = []
        if trigger != required_trigger:
            failures.append(f"trigger {trigger!r} != {required_trigger!r}")
        if params.task_id is not None and task_id != params.task_id:
            failures.append(f"task_id {task_id!r} != {params.task_id!r}")

        task_events = (
            [e for e in trace.events if e.task_id == task_id] if task_id is not None else []
        )
        if required_trigger == "scheduler" and task_id is not None and not task_events:
            failures.append(f"no events scoped to scheduler task_id {task_id!r}")

        return outcome(
            not failures,
            "; ".join(failures)
            if failures
            else "Scheduler task context is present and matches",
            {
                "trigger": trigger,
                "required_trigger": required_trigger,
                "task_id": task_id,
                "expected_task_id": params.task_id,
                "task_scoped_event_count": len(task_events),
            },
            task_events,
        )
