"""Replay bundle validation and normalization into canonical traces."""

from agenteval.replay.normalizer import (
    ACTOR_BY_TYPE,
    DEFAULT_CAPABILITIES,
    normalize_replay,
)
from agenteval.replay.validator import ReplayValidationError, validate_replay

__all__ = [
    "ACTOR_BY_TYPE",
    "DEFAULT_CAPABILITIES",
    "ReplayValidationError",
    "normalize_replay",
    "validate_replay",
]
