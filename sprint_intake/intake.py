"""
Sprint Intake

Parses sprint planning documents (rich-text pages or plain text) into
sections, tasks and per-engineer assignments. The format sniffer picks one
of two pipelines; both feed the assignment aggregator.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Callable, Optional

from sprint_intake.aggregator import aggregate_sections
from sprint_intake.config import DEFAULT_CONFIG, IntakeConfig
from sprint_intake.errors import InvalidInputError
from sprint_intake.legacy import LegacyWalker
from sprint_intake.models import InputFormat, ParseResult
from sprint_intake.structured import StructuredWalker

logger = logging.getLogger(__name__)

# Markup fragments that identify a rich-text page
RICH_TEXT_MARKERS = ("<p>", "<ol>")


def _parse_structured(document: str, config: IntakeConfig) -> ParseResult:
    soup = StructuredWalker.parse_html(document, config)
    outcome = StructuredWalker.walk(soup, config, source=document)
    assignments, duplicate_warnings = aggregate_sections(
        outcome.sections, warn_duplicates=config.warn_on_duplicate_assignment
    )
    return ParseResult(
        input_format=InputFormat.STRUCTURED,
        sections=tuple(outcome.sections),
        story_point_tally=dict(outcome.story_point_tally),
        assignments_by_engineer=assignments,
        warnings=tuple(outcome.warnings + duplicate_warnings),
    )


def _parse_legacy(document: str, config: IntakeConfig) -> ParseResult:
    outcome = LegacyWalker.walk(document, config)
    return ParseResult(
        input_format=InputFormat.LEGACY,
        story_point_tally=dict(outcome.story_point_tally),
        assignments_by_engineer=dict(outcome.assignments_by_engineer),
        warnings=tuple(outcome.warnings),
    )


PIPELINES: dict[InputFormat, Callable[[str, IntakeConfig], ParseResult]] = {
    InputFormat.STRUCTURED: _parse_structured,
    InputFormat.LEGACY: _parse_legacy,
}


class SprintIntake:
    """Entry point: one parse call, one immutable ParseResult."""

    @classmethod
    def parse(cls, document: Any, config: Optional[IntakeConfig] = None) -> ParseResult:
        """
        Parse a sprint planning document.

        Args:
            document: Page markup or plain text
            config: Pipeline limits (defaults when omitted)

        Returns:
            ParseResult; empty when nothing recognizable was found

        Raises:
            InvalidInputError: If document is not a string
        """
        if not isinstance(document, str):
            raise InvalidInputError(
                f"Sprint planning document must be a string, got {type(document).__name__}"
            )

        if config is None:
            config = DEFAULT_CONFIG
        input_format = cls.detect_format(document)
        logger.debug(f"Parsing {len(document)} chars with the {input_format.value} pipeline")

        result = PIPELINES[input_format](document, config)
        return ParseResult(
            input_format=result.input_format,
            sections=result.sections,
            story_point_tally=result.story_point_tally,
            assignments_by_engineer=result.assignments_by_engineer,
            warnings=result.warnings,
            content_hash=hashlib.sha256(document.encode()).hexdigest()[:16],
        )

    @classmethod
    def detect_format(cls, document: str) -> InputFormat:
        """Rich-text markup goes to the structured walker, anything else to the legacy one."""
        if document.strip().startswith("<") or any(
            marker in document for marker in RICH_TEXT_MARKERS
        ):
            return InputFormat.STRUCTURED
        return InputFormat.LEGACY


def parse(document: Any, config: Optional[IntakeConfig] = None) -> ParseResult:
    """Parse a sprint planning document. See SprintIntake.parse."""
    return SprintIntake.parse(document, config)


def detect_format(document: str) -> InputFormat:
    """Which pipeline a document would be parsed with."""
    return SprintIntake.detect_format(document)
