"""Claim support evaluator -- heuristic grounding of output in tool results.

The output passes when every URL it cites appears verbatim in the
allowed tool results and every content unit shares enough normalized
tokens with those results. This is an overlap heuristic, not fact
checking.
"""

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
from agenteval.evaluation.text import (
    collect_values,
    content_units,
    extract_urls,
    normalized_tokens,
    unsupported_units,
    url_values,
)
from agenteval.models.trace import Event, Trace


class ClaimsSupportedParams(CheckParams):
    allowed_sources: StrList = Field(default_factory=list)


def _fixture_results(trace: Trace, allowed_sources: list[str]) -> list[Event]:
    """Tool results from allowed tools that did not report failure."""
    return [
        e
        for e in trace.events_of_type("tool_result")
        if e.data.get("tool") in allowed_sources and e.data.get("success") is not False
    ]


class ClaimsSupportedByFixturesEvaluator(BaseEvaluator[ClaimsSupportedParams]):
    assertion_type = AssertionType.claims_supported_by_fixtures
    params_model = ClaimsSupportedParams

    def check(self, trace: Trace, params: ClaimsSupportedParams) -> CheckOutcome:
        allowed = params.allowed_sources
        results = _fixture_results(trace, allowed)
        if not results:
            return outcome(
                False,
                "No successful tool_result events for allowed_sources",
                {"allowed_sources": allowed, "tool_results_seen": 0},
            )

        output = trace.output_text
        values = [v for e in results for v in collect_values(e.data.get("result"))]

        output_urls = extract_urls(output)
        fixture_urls = url_values(values)
        unsupported_urls = [u for u in output_urls if u not in fixture_urls]
        if unsupported_urls:
            return outcome(
                False,
                f"Unsupported URLs in output: {', '.join(unsupported_urls)}",
                {
                    "allowed_sources": allowed,
                    "output_urls": output_urls,
                    "fixture_urls": fixture_urls,
                    "unsupported_urls": unsupported_urls,
                },
                results,
            )

        corpus: set[str] = set()
        for value in values:
            if isinstance(value, str):
                corpus.update(normalized_tokens(value, self.settings))

        units = content_units(output)
        unsupported = unsupported_units(units, corpus, self.settings)
        if unsupported:
            message = f"Unsupported content units: {' | '.join(unsupported)}"
        else:
            message = "Output claims are supported by fixture content (heuristic)"

        return outcome(
            not unsupported,
            message,
            {
                "allowed_sources": allowed,
                "tool_result_events": [e.event_id for e in results],
                "content_units_checked": len(units),
                "unsupported_units": unsupported,
            },
            results,
        )
