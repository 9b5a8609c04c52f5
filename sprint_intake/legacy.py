"""
Legacy Free-Text Walker

Handles planning documents with no usable markup: plain text, or pages
whose structure was flattened to a single line. The text is cut into
segments at numbering boundaries and each segment is matched against a
series of sentence templates, most specific first.

Carry-over context (current section, current requirement ticket) is an
immutable _WalkState threaded through the segments.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Optional

from sprint_intake.aggregator import dedupe_assignments
from sprint_intake.config import DEFAULT_CONFIG, IntakeConfig
from sprint_intake.models import AssignmentRecord, ParseWarning, match_section_title
from sprint_intake.recognizers import (
    PLATFORM_WORDS,
    extract_all_story_points,
    find_ticket_ids,
    trim_separators,
)

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description"

_LINE = re.compile(r"[^\n\r]+")
_NUMBERED_BOUNDARY = re.compile(r"(?<!\d)(?=\d+\.)")
_LONG_SEGMENT_BOUNDARY = re.compile(
    r"(?<!\d)(?=\d+\.\s)|(?=\s+[a-z]\.\s)|(?=\s+[A-Z]\.\s)"
)

# Entity sequences left behind when markup was flattened to text
ENTITY_REPLACEMENTS = (
    (re.compile(r"&rarr;"), "→"),
    (re.compile(r"&ldquo;|&rdquo;"), '"'),
    (re.compile(r"&[a-zA-Z]+;"), " "),
)

# "1. [Tags] Task description CPPF-1234" (optionally "→ timeline")
NUMBERED_TASK = re.compile(r"^(\d+)\.\s*(.+?)\s+(CPPF-\d+)(?:\s*→.*)?$", re.IGNORECASE)

# "a. CRE-10909: DanhPIC + Web.AnhD + Android + iOS"
SUB_ITEM = re.compile(r"^[a-zA-Z]\.\s*(CRE-\d+):\s*(.+)$", re.IGNORECASE)

LETTERED_ITEM = re.compile(r"^[a-zA-Z]\.\s")

# "Kun: fix the payment callback CPPF-12"
COLON_ASSIGNMENT = re.compile(r"^([A-Za-z\s]+):(.*)$")

# Single "+"-separated token of a sub-item assignee list, name in group 1
SUB_ITEM_TOKENS = (
    re.compile(r"([A-Za-z]+)PIC"),
    re.compile(r"Web\.([A-Za-z]+)"),
    re.compile(r"([A-Za-z]+)\.PIC"),
    re.compile(r"BE\.([A-Za-z]+)"),
    re.compile(r"App\.([A-Za-z]+)"),
)
_BARE_NAME = re.compile(r"[A-Za-z]{3,}")

# Engineer notations searched anywhere inside a segment
EMBEDDED_ENGINEERS = (
    re.compile(r"([A-Za-z]+)PIC(?![A-Za-z])"),
    re.compile(r"Web\.([A-Za-z]+)"),
    re.compile(r"([A-Za-z]+)\.PIC"),
    re.compile(r"([A-Za-z]+)[^\S\n]+PIC(?![A-Za-z])"),
    re.compile(r"BE\.([A-Za-z]+)"),
    re.compile(r"App\.([A-Za-z]+)"),
    re.compile(r"Android\+([A-Za-z]+)"),
    re.compile(r"iOS\+([A-Za-z]+)"),
)

_NOT_ENGINEERS = frozenset(word.lower() for word in PLATFORM_WORDS) | {"pm"}


@dataclass(frozen=True)
class _WalkState:
    """Context carried from one segment to the next."""

    section: Optional[str] = None
    ticket_id: Optional[str] = None
    description: str = ""


@dataclass
class _StepResult:
    state: _WalkState
    records: list[AssignmentRecord] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)


@dataclass
class LegacyOutcome:
    """What one walk over free text produced."""

    assignments_by_engineer: dict[str, tuple[AssignmentRecord, ...]] = field(
        default_factory=dict
    )
    story_point_tally: dict[str, int] = field(default_factory=dict)
    warnings: list[ParseWarning] = field(default_factory=list)


class LegacyWalker:
    """Template-driven extraction over free-text planning documents."""

    @classmethod
    def walk(cls, text: str, config: IntakeConfig = DEFAULT_CONFIG) -> LegacyOutcome:
        """
        Extract per-engineer assignments from free text.

        Args:
            text: Plain-text (or flattened) planning document
            config: Pipeline limits

        Returns:
            LegacyOutcome with deduplicated assignments, tally and warnings
        """
        outcome = LegacyOutcome()
        records: list[AssignmentRecord] = []
        state = _WalkState()

        segments = cls.segment(text, config)
        logger.debug(f"Legacy walk over {len(segments)} segment(s)")

        for offset, segment in segments:
            step = cls._step(state, offset, segment, config)
            state = step.state
            records.extend(step.records)
            outcome.warnings.extend(step.warnings)
            outcome.story_point_tally.update(extract_all_story_points(segment))

        assignments, duplicate_warnings = dedupe_assignments(
            records, warn_duplicates=config.warn_on_duplicate_assignment
        )
        outcome.assignments_by_engineer = assignments
        outcome.warnings.extend(duplicate_warnings)
        return outcome

    # =========================================================================
    # Segmentation
    # =========================================================================

    @classmethod
    def segment(cls, text: str, config: IntakeConfig = DEFAULT_CONFIG) -> list[tuple[int, str]]:
        """
        Cut text into normalized segments.

        Returns:
            (offset, segment) pairs; offset points at the segment's first
            non-blank character in the original text
        """
        lines = [(m.start(), m.group(0)) for m in _LINE.finditer(text)]

        # Everything on one line: split before each numbered item instead
        if len(lines) <= 1:
            lines = _split_with_offsets(text, 0, _NUMBERED_BOUNDARY)

        pieces: list[tuple[int, str]] = []
        for offset, line in lines:
            if len(line) > config.long_segment_threshold:
                pieces.extend(_split_with_offsets(line, offset, _LONG_SEGMENT_BOUNDARY))
            else:
                pieces.append((offset, line))

        segments = []
        for offset, piece in pieces:
            stripped = piece.strip()
            if len(stripped) < config.min_segment_length:
                continue
            leading = len(piece) - len(piece.lstrip())
            segments.append((offset + leading, normalize_entities(stripped)))
        return segments

    # =========================================================================
    # Templates
    # =========================================================================

    @classmethod
    def _step(
        cls, state: _WalkState, offset: int, segment: str, config: IntakeConfig
    ) -> _StepResult:
        """Classify one segment against the templates, most specific first."""
        section = match_section_title(segment, exact=True)
        if section is not None:
            return _StepResult(state=_WalkState(section=section.value))

        numbered = NUMBERED_TASK.match(segment)
        if numbered:
            return _StepResult(
                state=replace(
                    state,
                    ticket_id=numbered.group(3).upper(),
                    description=numbered.group(2).strip(),
                )
            )

        sub_item = SUB_ITEM.match(segment)
        if sub_item and state.ticket_id:
            return _StepResult(state=state, records=cls._sub_item_records(state, sub_item))

        tickets = find_ticket_ids(segment)

        # Other lettered lines are notes, timelines and comments
        if LETTERED_ITEM.match(segment):
            result = _StepResult(state=state)
            if tickets:
                result.warnings.append(
                    _warning("Lettered item does not match the assignment template", segment, offset)
                )
            return result

        if not tickets:
            return _StepResult(state=state)

        records = cls._embedded_records(state, segment, tickets, config)
        if not records:
            records = cls._colon_records(state, segment)

        result = _StepResult(state=state, records=records)
        if not records:
            result.warnings.append(
                _warning("Ticket reference without a recognizable assignee", segment, offset)
            )
        return result

    @classmethod
    def _sub_item_records(cls, state: _WalkState, match: re.Match) -> list[AssignmentRecord]:
        ticket_id = match.group(1).upper()
        assignees_text = match.group(2)
        records = []
        for token in re.split(r"\s*\+\s*", assignees_text):
            engineer = _engineer_from_token(token)
            if engineer is None:
                continue
            records.append(
                AssignmentRecord(
                    engineer_name=engineer,
                    ticket_id=ticket_id,
                    parent_ticket_id=state.ticket_id,
                    description=state.description or NO_DESCRIPTION,
                    section=state.section,
                    assignment_text=assignees_text,
                )
            )
        return records

    @classmethod
    def _embedded_records(
        cls, state: _WalkState, segment: str, tickets: list[str], config: IntakeConfig
    ) -> list[AssignmentRecord]:
        """Any engineer notation plus any ticket in the same segment."""
        engineers: dict[str, None] = {}
        for pattern in EMBEDDED_ENGINEERS:
            for match in pattern.finditer(segment):
                name = match.group(1).strip()
                if _is_engineer_name(name):
                    engineers.setdefault(name, None)

        return [
            AssignmentRecord(
                engineer_name=engineer,
                ticket_id=ticket_id,
                description=_describe(segment, ticket_id, config),
                section=state.section,
            )
            for engineer in engineers
            for ticket_id in tickets
        ]

    @classmethod
    def _colon_records(cls, state: _WalkState, segment: str) -> list[AssignmentRecord]:
        """Older "Name: description CPPF-1" lines."""
        match = COLON_ASSIGNMENT.match(segment)
        if not match:
            return []

        engineer = match.group(1).strip()
        if not engineer or engineer.lower() in _NOT_ENGINEERS or match_section_title(engineer, exact=True):
            return []

        content = match.group(2).strip()
        records = []
        for ticket_id in find_ticket_ids(content):
            description = re.sub(re.escape(ticket_id), "", content, count=1, flags=re.IGNORECASE)
            records.append(
                AssignmentRecord(
                    engineer_name=engineer,
                    ticket_id=ticket_id,
                    description=trim_separators(description) or NO_DESCRIPTION,
                    section=state.section,
                )
            )
        return records


def normalize_entities(segment: str) -> str:
    """Replace HTML entity leftovers with plain-text equivalents."""
    for pattern, replacement in ENTITY_REPLACEMENTS:
        segment = pattern.sub(replacement, segment)
    return segment.strip()


def _split_with_offsets(text: str, base: int, boundary: re.Pattern) -> list[tuple[int, str]]:
    pieces = []
    offset = base
    for piece in boundary.split(text):
        pieces.append((offset, piece))
        offset += len(piece)
    return pieces


def _is_engineer_name(name: str) -> bool:
    return len(name) >= 3 and name.isalpha() and name.lower() not in _NOT_ENGINEERS


def _engineer_from_token(token: str) -> Optional[str]:
    """Engineer named by one assignee-list token; platform names yield None."""
    token = token.strip()
    if token.lower() in _NOT_ENGINEERS:
        return None
    for pattern in SUB_ITEM_TOKENS:
        match = pattern.fullmatch(token)
        if match:
            name = match.group(1)
            return name if name.lower() not in _NOT_ENGINEERS else None
    if _BARE_NAME.fullmatch(token):
        return token
    return None


def _describe(segment: str, ticket_id: str, config: IntakeConfig) -> str:
    """Up to context_window characters either side of the ticket, ticket removed."""
    index = segment.upper().find(ticket_id)
    if index < 0:
        return NO_DESCRIPTION

    start = max(0, index - config.context_window)
    end = min(len(segment), index + len(ticket_id) + config.context_window)
    description = re.sub(
        re.escape(ticket_id), "", segment[start:end], flags=re.IGNORECASE
    )
    description = trim_separators(description)

    if len(description) > config.max_description_length:
        description = description[: config.max_description_length] + "..."
    return description or NO_DESCRIPTION


def _warning(message: str, segment: str, offset: int) -> ParseWarning:
    fragment = segment if len(segment) <= 120 else segment[:120] + "..."
    return ParseWarning(message=message, fragment=fragment, offset=offset)
