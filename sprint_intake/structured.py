"""
Structured-Document Walker

Walks the node tree of a rich-text planning page: finds the named section
markers, then the ordered lists under each one, and turns every list item
into a Task.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, Optional

from bs4 import BeautifulSoup, Tag

from sprint_intake.config import DEFAULT_CONFIG, IntakeConfig
from sprint_intake.models import (
    ParseWarning,
    Section,
    SectionName,
    Task,
    match_section_title,
)
from sprint_intake.recognizers import (
    TicketFamily,
    clean_task_name,
    expand_engineers,
    extract_all_story_points,
    extract_assignee_raw,
    extract_notes,
    extract_story_points,
    extract_ticket_id,
    ticket_family,
)

logger = logging.getLogger(__name__)

MARKER_TAGS = ("code", "h3")
STRIKE_TAGS = ("del", "s", "strike")

_LEADING_NUMBER = re.compile(r"^\s*#?\d+\.\s*")
_FRAGMENT_LIMIT = 120


@dataclass
class StructuredOutcome:
    """What one walk over a document tree produced."""

    sections: list[Section] = field(default_factory=list)
    story_point_tally: dict[str, int] = field(default_factory=dict)
    warnings: list[ParseWarning] = field(default_factory=list)


class _SourceIndex:
    """Maps parser (line, column) positions back to character offsets."""

    def __init__(self, source: Optional[str]):
        self._line_starts = [0]
        if source:
            self._line_starts.extend(
                i + 1 for i, char in enumerate(source) if char == "\n"
            )

    def offset_of(self, node: Tag) -> Optional[int]:
        line = getattr(node, "sourceline", None)
        column = getattr(node, "sourcepos", None)
        if line is None or column is None or line > len(self._line_starts):
            return None
        return self._line_starts[line - 1] + column


class StructuredWalker:
    """Extracts sections and tasks from a parsed planning page."""

    @classmethod
    def parse_html(cls, html: str, config: IntakeConfig = DEFAULT_CONFIG) -> BeautifulSoup:
        """Build the node tree the walker operates on."""
        return BeautifulSoup(html, config.html_parser)

    @classmethod
    def walk(
        cls,
        soup: BeautifulSoup,
        config: IntakeConfig = DEFAULT_CONFIG,
        source: Optional[str] = None,
    ) -> StructuredOutcome:
        """
        Walk a parsed document and collect its sections.

        Args:
            soup: Parsed node tree of the page
            config: Pipeline limits
            source: Original markup, used to report warning offsets

        Returns:
            StructuredOutcome with sections, story point tally and warnings
        """
        outcome = StructuredOutcome()
        index = _SourceIndex(source)
        seen: set[SectionName] = set()

        for marker, name in cls._find_markers(soup, config):
            if name in seen:
                outcome.warnings.append(
                    ParseWarning(
                        message=f"Duplicate {name.value} section marker ignored",
                        fragment=_fragment(marker.get_text()),
                        offset=index.offset_of(marker),
                    )
                )
                continue
            seen.add(name)

            tasks: list[Task] = []
            for node in cls._task_nodes(marker, name, config):
                task = cls._build_task(node, name, outcome, index)
                if task is not None:
                    tasks.append(task)

            logger.debug(f"Section {name.value}: {len(tasks)} task(s)")
            outcome.sections.append(Section(name=name, tasks=tuple(tasks)))

        return outcome

    # =========================================================================
    # Section discovery
    # =========================================================================

    @classmethod
    def _find_markers(
        cls, soup: BeautifulSoup, config: IntakeConfig
    ) -> list[tuple[Tag, SectionName]]:
        """Section markers in document order."""
        markers = []
        for node in soup.find_all(MARKER_TAGS):
            text = node.get_text().strip()
            if node.name == "code" and (
                len(text) > config.max_marker_length or _inside_marker_heading(node)
            ):
                continue
            name = match_section_title(text)
            if name is not None:
                markers.append((node, name))
        return markers

    @classmethod
    def _is_boundary(cls, node: Tag, config: IntakeConfig) -> bool:
        """True when node starts another section (any h3, or a code marker)."""
        if node.name == "h3":
            return True
        candidates = [node] if node.name == "code" else node.find_all("code")
        for code in candidates:
            text = code.get_text().strip()
            if len(text) <= config.max_marker_length and match_section_title(text):
                return True
        return False

    @classmethod
    def _task_nodes(
        cls, marker: Tag, name: SectionName, config: IntakeConfig
    ) -> Iterator[Tag]:
        """Yield the list items (and task paragraphs) belonging to a marker."""
        if marker.name == "h3":
            following = marker.find_next_sibling(True)
            if following is not None and following.name == "ol":
                yield from following.find_all("li", recursive=False)
            return

        # Code markers sit inside a paragraph; the lists are its siblings
        anchor = marker.find_parent("p") or marker

        for sibling in anchor.find_next_siblings(True):
            if cls._is_boundary(sibling, config):
                return
            if sibling.name == "ol":
                yield from sibling.find_all("li", recursive=False)
                if name is not SectionName.NEW_FOR_NEXT_SPRINT:
                    return
            elif sibling.name == "p" and name is SectionName.NEW_FOR_NEXT_SPRINT:
                yield sibling

    # =========================================================================
    # Task extraction
    # =========================================================================

    @classmethod
    def _build_task(
        cls,
        node: Tag,
        section: SectionName,
        outcome: StructuredOutcome,
        index: _SourceIndex,
    ) -> Optional[Task]:
        """Turn one list item or task paragraph into a Task, or None to skip it."""
        text = node.get_text()
        # Tag boundaries become spaces for the recognizers
        spaced = node.get_text(" ")

        if _is_cancelled(node, text):
            logger.debug(f"Skipping cancelled item: {_fragment(text)}")
            return None

        if node.name == "p":
            return cls._build_paragraph_task(node, text, spaced, outcome)

        prefer = TicketFamily.CRE if section.is_tech_debt else TicketFamily.CPPF
        ticket_id = extract_ticket_id(spaced, prefer)
        if ticket_id is None:
            outcome.warnings.append(
                ParseWarning(
                    message=f"{section.value} item has no ticket id",
                    fragment=_fragment(spaced),
                    offset=index.offset_of(node),
                )
            )
            return None

        # Name precedes the id for feature work, follows it for tech debt
        parts = re.split(re.escape(ticket_id), text, flags=re.IGNORECASE)
        if section.is_tech_debt:
            raw_name = parts[1] if len(parts) > 1 else parts[0]
        else:
            raw_name = parts[0]

        child_ticket_id = None
        if not section.is_tech_debt:
            child_ticket_id = _child_ticket_id(node, prefer.other)

        markup = node.decode_contents()
        assignee_raw = extract_assignee_raw(spaced)
        _record_story_points(markup, assignee_raw, outcome.story_point_tally)

        return Task(
            primary_ticket_id=ticket_id,
            name=clean_task_name(raw_name),
            child_ticket_id=child_ticket_id,
            assignee_raw=assignee_raw,
            notes=tuple(extract_notes(markup)),
        )

    @classmethod
    def _build_paragraph_task(
        cls, node: Tag, text: str, spaced: str, outcome: StructuredOutcome
    ) -> Optional[Task]:
        """A bare paragraph holding a single CPPF task, e.g. "#0. Foo CPPF-1412"."""
        ticket_id = extract_ticket_id(spaced, TicketFamily.CPPF)
        if ticket_family(ticket_id) is not TicketFamily.CPPF:
            return None

        raw_name = re.sub(re.escape(ticket_id), "", text, count=1, flags=re.IGNORECASE)
        raw_name = _LEADING_NUMBER.sub("", raw_name.strip())

        markup = node.decode_contents()
        assignee_raw = extract_assignee_raw(spaced)
        _record_story_points(markup, assignee_raw, outcome.story_point_tally)

        return Task(
            primary_ticket_id=ticket_id,
            name=clean_task_name(raw_name),
            assignee_raw=assignee_raw,
            notes=tuple(extract_notes(markup)),
        )


def _is_cancelled(node: Tag, text: str) -> bool:
    """An item is cancelled when a struck-through "[...]" run leads its text."""
    stripped = text.strip()
    if not stripped.startswith("["):
        return False
    for struck in node.find_all(STRIKE_TAGS):
        struck_text = struck.get_text().strip()
        if struck_text.startswith("[") and stripped.startswith(struck_text):
            return True
    return False


def _inside_marker_heading(node: Tag) -> bool:
    """True for a code node nested in an h3 that is itself a section marker."""
    heading = node.find_parent("h3")
    return heading is not None and match_section_title(heading.get_text().strip()) is not None


def _child_ticket_id(item: Tag, family: TicketFamily) -> Optional[str]:
    """Ticket of the other family from the first item of the first nested list."""
    nested = item.find("ol")
    if nested is None:
        return None
    first = nested.find("li", recursive=False)
    if first is None:
        return None
    candidate = extract_ticket_id(first.get_text(" "), family)
    return candidate if ticket_family(candidate) is family else None


def _record_story_points(
    markup: str, assignee_raw: Optional[str], tally: dict[str, int]
) -> None:
    # Later declarations overwrite earlier ones
    for engineer in expand_engineers(assignee_raw):
        points = extract_story_points(markup, engineer)
        if points is not None:
            tally[engineer] = points
    tally.update(extract_all_story_points(markup))


def _fragment(text: str) -> str:
    collapsed = " ".join(text.split())
    if len(collapsed) > _FRAGMENT_LIMIT:
        return collapsed[:_FRAGMENT_LIMIT] + "..."
    return collapsed
