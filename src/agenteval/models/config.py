"""Project configuration model for agenteval.

Captures agenteval.yaml fields with sensible defaults for project-level
settings like discovery, artifact output, logging and the thresholds
used by the text heuristics.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

CONFIG_FILE_NAME = "agenteval.yaml"


class HeuristicSettings(BaseModel):
    """Tunable thresholds for tokenization and claim-support overlap.

    A content unit with N tokens needs
    ``min(overlap_cap, max(overlap_floor, N // overlap_divisor))`` of them
    present in the fixture corpus to count as supported.
    """

    model_config = {"extra": "forbid", "frozen": True}

    min_token_length: int = Field(default=3, ge=1)
    suffix_strip_min_length: int = Field(default=5, ge=0)
    plural_strip_min_length: int = Field(default=4, ge=0)
    overlap_cap: int = Field(default=2, ge=1)
    overlap_floor: int = Field(default=1, ge=0)
    overlap_divisor: int = Field(default=3, ge=1)
    brief_line_max_chars: int = Field(default=220, ge=1)


class ProjectConfig(BaseModel):
    """Project-level configuration loaded from agenteval.yaml."""

    model_config = {"extra": "forbid"}

    default_adapter: str = "replay"
    test_file_name: str = "test.yaml"
    artifacts_dir: str = "artifacts"
    save_artifacts: bool = False
    log_level: str = "WARNING"
    heuristics: HeuristicSettings = Field(default_factory=HeuristicSettings)


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for agenteval.yaml or .agenteval/.

    Returns:
        The first directory containing either marker, or cwd if neither
        is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / CONFIG_FILE_NAME).exists() or (current / ".agenteval").exists():
            return current
        current = current.parent
    return Path.cwd()


def load_project_config(project_root: Path | None = None) -> ProjectConfig:
    """Load ProjectConfig from agenteval.yaml. Returns defaults if not found."""
    if project_root is None:
        project_root = find_project_root()
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return ProjectConfig()
    import yaml

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        return ProjectConfig()
    return ProjectConfig.model_validate(raw)
