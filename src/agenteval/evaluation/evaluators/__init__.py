"""Evaluator registry -- maps assertion kinds to evaluator classes."""

from __future__ import annotations

from agenteval.evaluation.evaluators.base import (
    AssertionType,
    BaseEvaluator,
    CheckOutcome,
)
from agenteval.evaluation.evaluators.claims import ClaimsSupportedByFixturesEvaluator
from agenteval.evaluation.evaluators.memory import (
    MemoryRecallSameGroupEvaluator,
    NoCrossGroupMemoryUseEvaluator,
)
from agenteval.evaluation.evaluators.ordering import (
    StopAfterSuccessEvaluator,
    ToolCallOrderEvaluator,
)
from agenteval.evaluation.evaluators.output import (
    GracefulFailureOutputEvaluator,
    OutputContainsEvaluator,
    OutputMatchesFormatEvaluator,
    OutputOmitsEvaluator,
)
from agenteval.evaluation.evaluators.retry import RetryPolicyRespectedEvaluator
from agenteval.evaluation.evaluators.scheduler import (
    SchedulerOutboundCountEvaluator,
    SchedulerTaskRunsEvaluator,
)
from agenteval.evaluation.evaluators.tool_calls import (
    MaxToolCallsEvaluator,
    MustCallToolEvaluator,
    MustNotCallToolEvaluator,
    ToolArgsMatchEvaluator,
)
from agenteval.models.config import HeuristicSettings

_EVALUATORS: tuple[type[BaseEvaluator], ...] = (
    MustCallToolEvaluator,
    MustNotCallToolEvaluator,
    ToolCallOrderEvaluator,
    MaxToolCallsEvaluator,
    ToolArgsMatchEvaluator,
    StopAfterSuccessEvaluator,
    OutputContainsEvaluator,
    OutputMatchesFormatEvaluator,
    OutputOmitsEvaluator,
    ClaimsSupportedByFixturesEvaluator,
    MemoryRecallSameGroupEvaluator,
    NoCrossGroupMemoryUseEvaluator,
    SchedulerOutboundCountEvaluator,
    SchedulerTaskRunsEvaluator,
    RetryPolicyRespectedEvaluator,
    GracefulFailureOutputEvaluator,
)

EVALUATOR_REGISTRY: dict[AssertionType, type[BaseEvaluator]] = {
    cls.assertion_type: cls for cls in _EVALUATORS
}

_unregistered = set(AssertionType) - set(EVALUATOR_REGISTRY)
if _unregistered:
    raise RuntimeError(
        f"Assertion types without an evaluator: {sorted(t.value for t in _unregistered)}"
    )


class UnsupportedAssertionType(ValueError):
    """Raised when an assertion names a type with no evaluator."""

    def __init__(self, assertion_type: str) -> None:
        self.assertion_type = assertion_type
        super().__init__(f"Unsupported assertion type: {assertion_type}")


def get_evaluator(
    assertion_type: str, settings: HeuristicSettings | None = None
) -> BaseEvaluator:
    """Look up and instantiate an evaluator for the given assertion type.

    Raises:
        UnsupportedAssertionType: If *assertion_type* is not a known kind.
    """
    try:
        kind = AssertionType(assertion_type)
    except ValueError:
        raise UnsupportedAssertionType(assertion_type) from None
    return EVALUATOR_REGISTRY[kind](settings)


__all__ = [
    "EVALUATOR_REGISTRY",
    "AssertionType",
    "BaseEvaluator",
    "CheckOutcome",
    "UnsupportedAssertionType",
    "get_evaluator",
]
