"""
Sprint Intake data model.

Records produced by a single parse call. The dataclasses are frozen; the
mappings a ParseResult carries are plain dicts built fresh for each call.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class InputFormat(Enum):
    """Which pipeline handled the document."""

    STRUCTURED = "structured"
    LEGACY = "legacy"


class SectionName(Enum):
    """Closed vocabulary of planning sections."""

    TO_BE_RELEASED = "ToBeReleased"
    CONTINUE_FROM_LAST_SPRINT = "ContinueFromLastSprint"
    NEW_FOR_NEXT_SPRINT = "NewForNextSprint"
    TECH_DEBT = "TechDebt"

    @property
    def title(self) -> str:
        """Heading text authors use for this section."""
        return SECTION_TITLES[self]

    @property
    def is_tech_debt(self) -> bool:
        return self is SectionName.TECH_DEBT


SECTION_TITLES = {
    SectionName.TO_BE_RELEASED: "TO BE RELEASED",
    SectionName.CONTINUE_FROM_LAST_SPRINT: "CONTINUE FROM LAST SPRINT",
    SectionName.NEW_FOR_NEXT_SPRINT: "NEW FOR NEXT SPRINT",
    SectionName.TECH_DEBT: "Techdebt",
}

# Titles reduced to bare letters so "Tech Debt", "TECH-DEBT:" etc. all match
_TITLE_KEYS = {
    name: re.sub(r"[^A-Z]", "", title.upper()) for name, title in SECTION_TITLES.items()
}


def match_section_title(text: Optional[str], exact: bool = False) -> Optional[SectionName]:
    """Return the section whose title appears in text, or None.

    With exact=True the text must consist of the title alone (punctuation
    and spacing aside).
    """
    if not text:
        return None
    key = re.sub(r"[^A-Z]", "", text.upper())
    for name, title_key in _TITLE_KEYS.items():
        if key == title_key or (not exact and title_key in key):
            return name
    return None


@dataclass(frozen=True)
class Task:
    """One planned work item under a section."""

    primary_ticket_id: str
    name: str
    child_ticket_id: Optional[str] = None
    assignee_raw: Optional[str] = None
    notes: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "primary_ticket_id": self.primary_ticket_id,
            "child_ticket_id": self.child_ticket_id,
            "name": self.name,
            "assignee_raw": self.assignee_raw,
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class Section:
    """A named section of the plan and its tasks, in document order."""

    name: SectionName
    tasks: tuple[Task, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name.value,
            "tasks": [task.to_dict() for task in self.tasks],
        }


@dataclass(frozen=True)
class AssignmentRecord:
    """A single engineer owning a single ticket."""

    engineer_name: str
    ticket_id: str
    description: str
    parent_ticket_id: Optional[str] = None
    section: Optional[str] = None
    assignment_text: Optional[str] = None  # raw notation, e.g. "DanhPIC + Web.AnhD"

    def to_dict(self) -> dict:
        return {
            "engineer_name": self.engineer_name,
            "ticket_id": self.ticket_id,
            "parent_ticket_id": self.parent_ticket_id,
            "description": self.description,
            "section": self.section,
            "assignment_text": self.assignment_text,
        }


@dataclass(frozen=True)
class ParseWarning:
    """A fragment that could not be classified into any known template."""

    message: str
    fragment: str
    offset: Optional[int] = None  # character offset into the input

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "fragment": self.fragment,
            "offset": self.offset,
        }


@dataclass(frozen=True)
class ParseResult:
    """Output of one parse call.

    ``sections`` and ``story_point_tally`` describe the document structure;
    ``assignments_by_engineer`` is the per-engineer projection. On the
    legacy path ``sections`` is always empty.

    The result is frozen but its two mappings are ordinary dicts owned by
    this result; no other result shares them.
    """

    input_format: InputFormat
    sections: tuple[Section, ...] = ()
    story_point_tally: dict[str, int] = field(default_factory=dict)
    assignments_by_engineer: dict[str, tuple[AssignmentRecord, ...]] = field(
        default_factory=dict
    )
    warnings: tuple[ParseWarning, ...] = ()
    content_hash: Optional[str] = None

    def get_section(self, name: SectionName) -> Optional[Section]:
        """Find a section by name."""
        for section in self.sections:
            if section.name is name:
                return section
        return None

    @property
    def engineers(self) -> list[str]:
        return list(self.assignments_by_engineer)

    def is_empty(self) -> bool:
        return not self.sections and not self.assignments_by_engineer

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "input_format": self.input_format.value,
            "sections": [section.to_dict() for section in self.sections],
            "story_point_tally": dict(self.story_point_tally),
            "assignments_by_engineer": {
                engineer: [record.to_dict() for record in records]
                for engineer, records in self.assignments_by_engineer.items()
            },
            "warnings": [warning.to_dict() for warning in self.warnings],
            "content_hash": self.content_hash,
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> ParseResult:
        """Deserialize from JSON string."""
        data = json.loads(json_str)

        sections = tuple(
            Section(
                name=SectionName(s["name"]),
                tasks=tuple(
                    Task(
                        primary_ticket_id=t["primary_ticket_id"],
                        name=t["name"],
                        child_ticket_id=t.get("child_ticket_id"),
                        assignee_raw=t.get("assignee_raw"),
                        notes=tuple(t.get("notes", [])),
                    )
                    for t in s.get("tasks", [])
                ),
            )
            for s in data.get("sections", [])
        )
        assignments = {
            engineer: tuple(AssignmentRecord(**r) for r in records)
            for engineer, records in data.get("assignments_by_engineer", {}).items()
        }
        warnings = tuple(ParseWarning(**w) for w in data.get("warnings", []))

        return cls(
            input_format=InputFormat(data.get("input_format", "legacy")),
            sections=sections,
            story_point_tally=dict(data.get("story_point_tally", {})),
            assignments_by_engineer=assignments,
            warnings=warnings,
            content_hash=data.get("content_hash"),
        )
