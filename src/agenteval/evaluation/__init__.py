"""Evaluation package for assertion processing.

Provides event selectors, text heuristics, the evaluator registry and
the engine that turns a trace plus assertions into verdicts.
"""

from __future__ import annotations

from agenteval.evaluation.engine import EvaluationOutcome, evaluate, evaluate_assertion
from agenteval.evaluation.evaluators import (
    EVALUATOR_REGISTRY,
    AssertionType,
    UnsupportedAssertionType,
    get_evaluator,
)
from agenteval.evaluation.selectors import EventSelector, first_match, matches, selector_label

__all__ = [
    "EVALUATOR_REGISTRY",
    "AssertionType",
    "EvaluationOutcome",
    "EventSelector",
    "UnsupportedAssertionType",
    "evaluate",
    "evaluate_assertion",
    "first_match",
    "get_evaluator",
    "matches",
    "selector_label",
]
