"""Logging configuration for agenteval.

Module loggers hang off the ``agenteval`` logger; ``setup_logging``
routes them through a rich handler on stderr so log lines never mix
with report or JSON output on stdout.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "AGENTEVAL_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_log_level(cli_level: str | None = None, config_level: str | None = None) -> str:
    """Pick the effective level: CLI flag, then env var, then project config."""
    for candidate in (cli_level, os.getenv(LOG_LEVEL_ENV), config_level):
        if candidate and candidate.upper() in VALID_LOG_LEVELS:
            return candidate.upper()
    return DEFAULT_LOG_LEVEL


def setup_logging(log_level: str | None = None) -> None:
    """Configure the ``agenteval`` logger hierarchy.

    Calling it again replaces the previous handler, so the CLI can
    re-apply the level once the project config is known.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to
            the AGENTEVAL_LOG_LEVEL env var, then WARNING.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))

    logger = logging.getLogger("agenteval")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(resolve_log_level(log_level))
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
