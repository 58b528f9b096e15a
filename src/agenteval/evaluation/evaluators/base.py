"""Base evaluator, assertion kinds and the uniform check outcome."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator

from agenteval.models.config import HeuristicSettings
from agenteval.models.trace import Event, ScopeId, Trace

EXCERPT_CHARS = 200


class AssertionType(str, Enum):
    """Closed set of assertion kinds the engine can evaluate."""

    must_call_tool = "must_call_tool"
    must_not_call_tool = "must_not_call_tool"
    tool_call_order = "tool_call_order"
    max_tool_calls = "max_tool_calls"
    tool_args_match = "tool_args_match"
    stop_after_success = "stop_after_success"
    output_contains = "output_contains"
    output_matches_format = "output_matches_format"
    output_omits = "output_omits"
    claims_supported_by_fixtures = "claims_supported_by_fixtures"
    memory_recall_same_group = "memory_recall_same_group"
    no_cross_group_memory_use = "no_cross_group_memory_use"
    scheduler_outbound_count = "scheduler_outbound_count"
    scheduler_task_runs = "scheduler_task_runs"
    retry_policy_respected = "retry_policy_respected"
    graceful_failure_output = "graceful_failure_output"


def _as_list(value: Any) -> Any:
    """Accept a scalar wherever a list is expected; null means empty."""
    if value is None:
        return []
    if isinstance(value, (str, int, float, bool, dict)):
        return [value]
    return value


StrList = Annotated[list[str], BeforeValidator(_as_list)]
IdList = Annotated[list[ScopeId], BeforeValidator(_as_list)]


class CheckParams(BaseModel):
    """Base for per-check parameter models. Unknown keys are ignored."""

    model_config = {"extra": "ignore", "frozen": True}


P = TypeVar("P", bound=CheckParams)


@dataclass
class CheckOutcome:
    """What a check algorithm concluded and the evidence behind it.

    Attributes:
        status: "pass" or "fail".
        message: Human-readable verdict explanation.
        observed: Check-specific structured evidence.
        event_refs: Ids of the events that justify the verdict.
    """

    status: str
    message: str
    observed: dict[str, Any] = field(default_factory=dict)
    event_refs: list[str] = field(default_factory=list)


def outcome(
    passed: bool,
    message: str,
    observed: dict[str, Any] | None = None,
    events: list[Event] | None = None,
) -> CheckOutcome:
    """Build a CheckOutcome, de-duplicating event refs in order."""
    refs: list[str] = []
    for event in events or []:
        if event.event_id not in refs:
            refs.append(event.event_id)
    return CheckOutcome(
        status="pass" if passed else "fail",
        message=message,
        observed=observed or {},
        event_refs=refs,
    )


def excerpt(text: str) -> str:
    return text[:EXCERPT_CHARS]


class BaseEvaluator(ABC, Generic[P]):
    """Abstract base class for assertion evaluators.

    Subclasses declare the assertion kind they handle and a pydantic
    params model. evaluate() validates the raw params and hands the
    typed model to check().
    """

    assertion_type: ClassVar[AssertionType]
    params_model: ClassVar[type[CheckParams]]

    def __init__(self, settings: HeuristicSettings | None = None) -> None:
        self.settings = settings or HeuristicSettings()

    def evaluate(self, trace: Trace, params: dict[str, Any]) -> CheckOutcome:
        """Validate *params* and run the check against *trace*.

        Raises:
            pydantic.ValidationError: If params do not fit params_model.
        """
        typed = self.params_model.model_validate(params or {})
        return self.check(trace, typed)  # type: ignore[arg-type]

    @abstractmethod
    def check(self, trace: Trace, params: P) -> CheckOutcome:
        """Run the check algorithm. Must not mutate *trace*."""
