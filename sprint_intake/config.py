"""
Sprint Intake Configuration

Pydantic model for the tunable thresholds of the parsing pipelines, and a
loader for the [tool.sprint-intake] table of a pyproject.toml.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from sprint_intake.errors import ConfigError

logger = logging.getLogger(__name__)

PYPROJECT_TABLE = "sprint-intake"


class IntakeConfig(BaseModel):
    """Tunable limits for the structured and legacy pipelines."""

    long_segment_threshold: int = Field(default=500, ge=50, le=100_000)
    min_segment_length: int = Field(default=5, ge=0, le=100)
    context_window: int = Field(default=100, ge=0, le=2_000)
    max_description_length: int = Field(default=200, ge=20, le=5_000)
    max_marker_length: int = Field(default=80, ge=10, le=500)
    warn_on_duplicate_assignment: bool = False  # default keeps duplicates silent
    html_parser: str = "html.parser"  # BeautifulSoup tree builder

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> IntakeConfig:
        """Build a config from a plain mapping, raising ConfigError on bad values."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid sprint intake configuration: {e}") from e


DEFAULT_CONFIG = IntakeConfig()


def load_config_from_pyproject(repo_root: Path) -> IntakeConfig:
    """Load configuration from pyproject.toml.

    Args:
        repo_root: Directory holding the pyproject.toml

    Returns:
        IntakeConfig (defaults if the file or table is missing or invalid)
    """
    pyproject_path = Path(repo_root) / "pyproject.toml"

    if not pyproject_path.exists():
        return IntakeConfig()

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib

    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Could not read {pyproject_path}: {e}")
        return IntakeConfig()

    tool_config = data.get("tool", {}).get(PYPROJECT_TABLE, {})
    if not tool_config:
        return IntakeConfig()

    try:
        return IntakeConfig.from_mapping(tool_config)
    except ConfigError as e:
        logger.warning(f"Ignoring [tool.{PYPROJECT_TABLE}]: {e}")
        return IntakeConfig()
