"""Assertion engine -- evaluates a test spec's assertions against a trace.

Each assertion is capability-gated, dispatched to its evaluator, and
converted into an AssertionResult. Evaluator exceptions become failing
results so one broken assertion never aborts the rest.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from agenteval.evaluation.evaluators import UnsupportedAssertionType, get_evaluator
from agenteval.evaluation.evaluators.base import CheckOutcome
from agenteval.logging_config import get_logger
from agenteval.models.config import HeuristicSettings
from agenteval.models.result import AssertionResult, CapabilityCheck, Evidence
from agenteval.models.spec import AssertionSpec, TestSpec
from agenteval.models.trace import Trace

logger = get_logger(__name__)


@dataclass
class EvaluationOutcome:
    """All assertion results for one trace plus the critical failure count."""

    assertions: list[AssertionResult] = field(default_factory=list)
    critical_failures: int = 0

    @property
    def passed(self) -> bool:
        return self.critical_failures == 0


def capability_check(assertion: AssertionSpec, capabilities: dict[str, bool]) -> CapabilityCheck:
    """Compare an assertion's required capabilities with what the trace offers."""
    required = list(assertion.requires_capabilities)
    if not required:
        return CapabilityCheck(required=[], available=[], status="not_applicable")
    available = [flag for flag in required if capabilities.get(flag)]
    status = "satisfied" if len(available) == len(required) else "missing"
    return CapabilityCheck(required=required, available=available, status=status)


def _result(
    assertion: AssertionSpec,
    caps: CapabilityCheck,
    status: str,
    message: str,
    check: CheckOutcome | None = None,
) -> AssertionResult:
    return AssertionResult(
        id=assertion.id,
        type=assertion.type,
        severity=assertion.severity,
        status=status,
        message=message,
        params=dict(assertion.params),
        observed=check.observed if check else {},
        evidence=Evidence(event_refs=check.event_refs if check else []),
        capability_check=caps,
    )


def evaluate_assertion(
    assertion: AssertionSpec,
    trace: Trace,
    settings: HeuristicSettings | None = None,
) -> AssertionResult:
    """Evaluate one assertion. Never raises for check-level problems."""
    caps = capability_check(assertion, trace.capabilities)
    if caps.status == "missing":
        missing = [flag for flag in caps.required if flag not in caps.available]
        logger.debug("Skipping %s: missing capabilities %s", assertion.id, missing)
        return _result(
            assertion, caps, "skip", f"Missing adapter capabilities: {', '.join(missing)}"
        )

    try:
        evaluator = get_evaluator(assertion.type, settings)
    except UnsupportedAssertionType as exc:
        return _result(assertion, caps, "fail", str(exc))

    try:
        check = evaluator.evaluate(trace, assertion.params)
    except Exception as exc:  # a broken check fails only its own assertion
        logger.debug("Assertion %s raised %s", assertion.id, exc, exc_info=True)
        return _result(
            assertion,
            caps,
            "fail",
            f"Assertion error ({assertion.type}): {type(exc).__name__}: {exc}",
        )

    return _result(assertion, caps, check.status, check.message, check)


def evaluate(
    spec: TestSpec,
    trace: Trace,
    settings: HeuristicSettings | None = None,
) -> EvaluationOutcome:
    """Evaluate every assertion in *spec* against *trace*, in order.

    Args:
        spec: Test specification holding the assertion list.
        trace: Normalized trace to evaluate.
        settings: Heuristic thresholds for text-based checks.

    Returns:
        EvaluationOutcome with one result per assertion and the number
        of failed critical assertions.
    """
    results = [evaluate_assertion(a, trace, settings) for a in spec.assertions]
    critical_failures = sum(
        1 for r in results if r.status == "fail" and r.severity == "critical"
    )
    return EvaluationOutcome(assertions=results, critical_failures=critical_failures)
