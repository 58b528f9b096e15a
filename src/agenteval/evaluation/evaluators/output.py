"""Final output evaluators -- content, format, omissions and failure wording."""

from __future__ import annotations

import json
import re
from collections.abc import Callable

from pydantic import Field

from agenteval.evaluation.evaluators.base import (
    AssertionType,
    BaseEvaluator,
    CheckOutcome,
    CheckParams,
    StrList,
    excerpt,
    outcome,
)
from agenteval.evaluation.text import bullet_lines, split_paragraphs
from agenteval.models.trace import Trace

SUPPORTED_FORMATS = ("bullet_list", "paragraphs", "json")

DEFAULT_SUCCESS_PHRASES = (
    "sent successfully",
    "completed successfully",
    "successfully sent",
    "all set",
)

_SENTENCE_END_RE = re.compile(r"[.!?](?:\s|$)")


def _contains(text: str, needle: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return needle in text
    return needle.lower() in text.lower()


def _regex_flags(case_sensitive: bool) -> int:
    return 0 if case_sensitive else re.IGNORECASE


class OutputContainsParams(CheckParams):
    any_of: StrList = Field(default_factory=list)
    all_of: StrList = Field(default_factory=list)
    regex: StrList = Field(default_factory=list)
    case_sensitive: bool = False


class OutputContainsEvaluator(BaseEvaluator[OutputContainsParams]):
    """Checks any_of / all_of substrings and regex patterns on the output."""

    assertion_type = AssertionType.output_contains
    params_model = OutputContainsParams

    def check(self, trace: Trace, params: OutputContainsParams) -> CheckOutcome:
        text = trace.output_text
        cs = params.case_sensitive

        matched_any_of = [n for n in params.any_of if _contains(text, n, cs)]
        matched_all_of = [n for n in params.all_of if _contains(text, n, cs)]
        matched_regexes = [
            p for p in params.regex if re.search(p, text, _regex_flags(cs))
        ]

        failures: list[str] = []
        if params.any_of and not matched_any_of:
            failures.append("none of any_of matched")
        failures.extend(
            f"missing {n!r}" for n in params.all_of if n not in matched_all_of
        )
        failures.extend(
            f"regex {p!r} did not match" for p in params.regex if p not in matched_regexes
        )

        return outcome(
            not failures,
            "; ".join(failures) if failures else "Output contains expected content",
            {
                "case_sensitive": cs,
                "any_of_count": len(params.any_of),
                "all_of_count": len(params.all_of),
                "regex_count": len(params.regex),
                "matched_any_of": matched_any_of,
                "matched_all_of": matched_all_of,
                "matched_regexes": matched_regexes,
                "final_output_excerpt": excerpt(text),
            },
        )


class OutputMatchesFormatParams(CheckParams):
    format: str
    min_bullets: int | None = None
    max_bullets: int | None = None
    max_sentences_per_bullet: int | None = None
    exact_paragraphs: int | None = None
    required_keys: StrList = Field(default_factory=list)


def sentence_count(line: str) -> int:
    """Count sentence terminators; a non-blank line is at least one sentence."""
    count = len(_SENTENCE_END_RE.findall(line))
    if count == 0 and line.strip():
        return 1
    return count


def check_bullet_list(text: str, params: OutputMatchesFormatParams) -> CheckOutcome:
    bullets = bullet_lines(text)
    failures: list[str] = []
    if not bullets:
        failures.append("no bullet lines found")
    if params.min_bullets is not None and len(bullets) < params.min_bullets:
        failures.append(f"bullet count {len(bullets)} < {params.min_bullets}")
    if params.max_bullets is not None and len(bullets) > params.max_bullets:
        failures.append(f"bullet count {len(bullets)} > {params.max_bullets}")
    if params.max_sentences_per_bullet is not None:
        for idx, line in enumerate(bullets, 1):
            count = sentence_count(line)
            if count > params.max_sentences_per_bullet:
                failures.append(
                    f"bullet {idx} has {count} sentences > {params.max_sentences_per_bullet}"
                )

    return outcome(
        not failures,
        "; ".join(failures) if failures else "Output matches bullet_list",
        {
            "format": "bullet_list",
            "bullet_count": len(bullets),
            "sample_bullets": bullets[:2],
            "final_output_excerpt": excerpt(text),
        },
    )


def check_paragraphs(text: str, params: OutputMatchesFormatParams) -> CheckOutcome:
    paragraphs = split_paragraphs(text)
    failures: list[str] = []
    if params.exact_paragraphs is not None and len(paragraphs) != params.exact_paragraphs:
        failures.append(f"paragraph count {len(paragraphs)} != {params.exact_paragraphs}")

    return outcome(
        not failures,
        "; ".join(failures) if failures else "Output matches paragraphs",
        {
            "format": "paragraphs",
            "paragraph_count": len(paragraphs),
            "sample_paragraphs": paragraphs[:2],
        },
    )


def check_json(text: str, params: OutputMatchesFormatParams) -> CheckOutcome:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        return outcome(
            False,
            f"Invalid JSON output: {exc}",
            {"format": "json", "final_output_excerpt": excerpt(text)},
        )

    keys = list(parsed.keys()) if isinstance(parsed, dict) else []
    failures = [f"missing key {k}" for k in params.required_keys if k not in keys]
    return outcome(
        not failures,
        "; ".join(failures) if failures else "Output matches json",
        {
            "format": "json",
            "parsed_type": type(parsed).__name__,
            "parsed_keys": keys,
            "required_keys": params.required_keys,
        },
    )


class OutputMatchesFormatEvaluator(BaseEvaluator[OutputMatchesFormatParams]):
    """Validates output structure as a bullet list, paragraphs or JSON."""

    assertion_type = AssertionType.output_matches_format
    params_model = OutputMatchesFormatParams

    def check(self, trace: Trace, params: OutputMatchesFormatParams) -> CheckOutcome:
        dispatch: dict[str, Callable[[str, OutputMatchesFormatParams], CheckOutcome]] = {
            "bullet_list": check_bullet_list,
            "paragraphs": check_paragraphs,
            "json": check_json,
        }
        check_fn = dispatch.get(params.format)
        if check_fn is None:
            return outcome(
                False,
                f"Unsupported format: {params.format}",
                {"format": params.format, "supported_formats": list(SUPPORTED_FORMATS)},
            )
        return check_fn(trace.output_text, params)


class OutputOmitsParams(CheckParams):
    patterns: StrList = Field(default_factory=list)
    regex: bool = False
    case_sensitive: bool = False


class OutputOmitsEvaluator(BaseEvaluator[OutputOmitsParams]):
    """Fails when any forbidden substring or regex appears in the output."""

    assertion_type = AssertionType.output_omits
    params_model = OutputOmitsParams

    def check(self, trace: Trace, params: OutputOmitsParams) -> CheckOutcome:
        text = trace.output_text
        cs = params.case_sensitive
        if params.regex:
            matched = [p for p in params.patterns if re.search(p, text, _regex_flags(cs))]
        else:
            matched = [p for p in params.patterns if _contains(text, p, cs)]

        return outcome(
            not matched,
            f"Matched forbidden patterns: {', '.join(matched)}"
            if matched
            else "Output omits forbidden patterns",
            {
                "regex_mode": params.regex,
                "case_sensitive": cs,
                "patterns_checked": len(params.patterns),
                "matched_patterns": matched,
                "final_output_excerpt": excerpt(text),
            },
        )


class GracefulFailureOutputParams(CheckParams):
    allowed_failure_phrases: StrList = Field(default_factory=list)
    must_not_claim_success: bool = True
    forbidden_success_phrases: StrList = Field(default_factory=list)


class GracefulFailureOutputEvaluator(BaseEvaluator[GracefulFailureOutputParams]):
    """After errors, the output must admit failure and not claim success."""

    assertion_type = AssertionType.graceful_failure_output
    params_model = GracefulFailureOutputParams

    def check(self, trace: Trace, params: GracefulFailureOutputParams) -> CheckOutcome:
        text = trace.output_text
        errors = trace.events_of_type("error")
        if not errors:
            return outcome(
                False,
                "No error events found; graceful failure check requires a failure scenario",
                {"error_events": 0, "final_output_excerpt": excerpt(text)},
            )

        failure_phrase = next(
            (p for p in params.allowed_failure_phrases if _contains(text, p, False)), None
        )
        if failure_phrase is None:
            return outcome(
                False,
                "Output does not contain an allowed failure phrase",
                {
                    "allowed_failure_phrases": params.allowed_failure_phrases,
                    "final_output_excerpt": excerpt(text),
                },
                errors,
            )

        if params.must_not_claim_success:
            phrases = params.forbidden_success_phrases or list(DEFAULT_SUCCESS_PHRASES)
            success_phrase = next((p for p in phrases if _contains(text, p, False)), None)
            if success_phrase is not None:
                return outcome(
                    False,
                    "Output claims success despite error events "
                    f"(matched {success_phrase!r})",
                    {
                        "matched_success_phrase": success_phrase,
                        "allowed_failure_phrase_matched": failure_phrase,
                        "error_events": len(errors),
                    },
                    errors,
                )

        return outcome(
            True,
            "Output communicates failure clearly",
            {
                "allowed_failure_phrase_matched": failure_phrase,
                "error_events": len(errors),
                "final_output_excerpt": excerpt(text),
            },
            errors,
        )
