"""Text heuristics shared by the content-matching evaluators.

Tokenization with light stemming, bullet/paragraph segmentation, and the
token-overlap test used to decide whether an output claim is supported
by tool-result fixtures. The thresholds come from HeuristicSettings and
are deliberately approximate.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from agenteval.models.config import HeuristicSettings

STOPWORDS: frozenset[str] = frozenset(
    """
    the a an and or but if then than for with without from into onto over under by of on in to at
    is are was were be been being this that these those it its they them their there here as not no
    today latest short exactly useful help helps using used use more less earlier later can will should
    after before one two three
    """.split()
)

DEFAULT_SETTINGS = HeuristicSettings()

_TOKEN_RE = re.compile(r"[a-z0-9]+")
_BULLET_RE = re.compile(r"^[-*]\s+")
_INDENTED_BULLET_RE = re.compile(r"^\s*[-*]\s+")
_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n+")
_URL_RE = re.compile(r"https?://[^\s)]+")
_URL_VALUE_RE = re.compile(r"^https?://")


def stem_token(token: str, settings: HeuristicSettings = DEFAULT_SETTINGS) -> str:
    """Strip common English suffixes: ies->y, then ing/ed, then plural s."""
    if token.endswith("ies"):
        token = token[:-3] + "y"
    if len(token) > settings.suffix_strip_min_length:
        token = re.sub(r"(ing|ed)$", "", token)
    if len(token) > settings.plural_strip_min_length and token.endswith("s"):
        token = token[:-1]
    return token


def normalized_tokens(
    text: str, settings: HeuristicSettings = DEFAULT_SETTINGS
) -> list[str]:
    """Lower-case, split on non-alphanumerics, stem, drop noise, dedupe in order."""
    tokens: list[str] = []
    seen: set[str] = set()
    for raw in _TOKEN_RE.findall(text.lower()):
        token = stem_token(raw, settings)
        if len(token) < settings.min_token_length or token in STOPWORDS:
            continue
        if token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


def bullet_lines(text: str) -> list[str]:
    """Return lines that start with a ``-`` or ``*`` marker, right-stripped."""
    stripped = (line.rstrip() for line in text.splitlines())
    return [line for line in stripped if _INDENTED_BULLET_RE.match(line)]


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines; return trimmed, non-empty paragraphs."""
    parts = (p.strip() for p in _PARAGRAPH_BREAK_RE.split(text or ""))
    return [p for p in parts if p]


def content_units(text: str) -> list[str]:
    """Bullet texts (marker removed) if any bullets exist, else paragraphs."""
    stripped = (line.strip() for line in text.splitlines())
    bullets = [_BULLET_RE.sub("", line, count=1) for line in stripped if _BULLET_RE.match(line)]
    if bullets:
        return bullets
    return split_paragraphs(text)


def collect_values(value: Any) -> list[Any]:
    """Recursively collect leaf values from nested dicts and lists."""
    if isinstance(value, dict):
        return [leaf for v in value.values() for leaf in collect_values(v)]
    if isinstance(value, list):
        return [leaf for v in value for leaf in collect_values(v)]
    return [value]


def extract_urls(text: str) -> list[str]:
    return _URL_RE.findall(text)


def url_values(values: Iterable[Any]) -> list[str]:
    """Return the unique string values that are themselves URLs."""
    urls: list[str] = []
    for value in values:
        if isinstance(value, str) and _URL_VALUE_RE.match(value) and value not in urls:
            urls.append(value)
    return urls


def required_overlap(
    token_count: int, settings: HeuristicSettings = DEFAULT_SETTINGS
) -> int:
    return min(
        settings.overlap_cap,
        max(settings.overlap_floor, token_count // settings.overlap_divisor),
    )


def unsupported_units(
    units: Iterable[str],
    corpus_tokens: set[str],
    settings: HeuristicSettings = DEFAULT_SETTINGS,
) -> list[str]:
    """Return the content units whose token overlap with the corpus is too low.

    Units without any meaningful tokens make no claim and are skipped.
    """
    unsupported: list[str] = []
    for unit in units:
        tokens = normalized_tokens(unit, settings)
        if not tokens:
            continue
        overlap = sum(1 for t in tokens if t in corpus_tokens)
        if overlap < required_overlap(len(tokens), settings):
            unsupported.append(unit)
    return unsupported
