"""
Sprint Intake error types.

Recognizer misses are never errors: they come back as ``None`` or empty
collections. Only the cases below are raised.
"""

from __future__ import annotations


class SprintIntakeError(Exception):
    """Base class for sprint intake failures."""

    pass


class InvalidInputError(SprintIntakeError, TypeError):
    """Raised when parse() receives something other than a string."""

    pass


class EngineerNotFoundError(SprintIntakeError, LookupError):
    """Raised when an engineer lookup matches nobody in the assignments."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        listing = ", ".join(available) if available else "none"
        super().__init__(
            f'Engineer "{name}" not found in assignments. '
            f"Available engineers: {listing}"
        )


class ConfigError(SprintIntakeError):
    """Raised when intake configuration is invalid."""

    pass
