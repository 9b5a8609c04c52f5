"""
Assignment Aggregator

Builds the per-engineer view of a plan: expands each task's assignee
notation into engineers, deduplicates by ticket id, and offers lookup and
summary helpers over the result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional, Union

from sprint_intake.errors import EngineerNotFoundError
from sprint_intake.models import (
    AssignmentRecord,
    ParseResult,
    ParseWarning,
    Section,
    Task,
)
from sprint_intake.recognizers import expand_engineers

logger = logging.getLogger(__name__)

AssignmentMap = dict[str, tuple[AssignmentRecord, ...]]
AssignmentSource = Union[
    Iterable[AssignmentRecord], Mapping[str, Iterable[AssignmentRecord]]
]


def expand_task(task: Task, section: Section) -> list[AssignmentRecord]:
    """One record per engineer named in the task's assignee notation."""
    has_child = task.child_ticket_id is not None and task.child_ticket_id != task.primary_ticket_id
    return [
        AssignmentRecord(
            engineer_name=engineer,
            ticket_id=task.child_ticket_id if has_child else task.primary_ticket_id,
            parent_ticket_id=task.primary_ticket_id if has_child else None,
            description=task.name or "No description",
            section=section.name.value,
            assignment_text=task.assignee_raw,
        )
        for engineer in expand_engineers(task.assignee_raw)
    ]


def aggregate_sections(
    sections: Iterable[Section], warn_duplicates: bool = False
) -> tuple[AssignmentMap, list[ParseWarning]]:
    """
    Project structured sections onto a per-engineer assignment map.

    Args:
        sections: Sections in document order
        warn_duplicates: Report dropped duplicate assignments as warnings

    Returns:
        (assignments by engineer, duplicate warnings)
    """
    records = [
        record
        for section in sections
        for task in section.tasks
        for record in expand_task(task, section)
    ]
    return dedupe_assignments(records, warn_duplicates=warn_duplicates)


def dedupe_assignments(
    assignments: AssignmentSource, warn_duplicates: bool = False
) -> tuple[AssignmentMap, list[ParseWarning]]:
    """
    Group records by engineer keeping the first record per ticket id.

    Accepts a flat record sequence or an existing engineer -> records
    mapping. Engineers left with no records are dropped.
    """
    if isinstance(assignments, Mapping):
        records: Iterable[AssignmentRecord] = (
            record for group in assignments.values() for record in group
        )
    else:
        records = assignments

    grouped: dict[str, list[AssignmentRecord]] = {}
    seen: dict[str, set[str]] = {}
    warnings: list[ParseWarning] = []

    for record in records:
        tickets = seen.setdefault(record.engineer_name, set())
        if record.ticket_id in tickets:
            logger.debug(f"Dropping duplicate {record.ticket_id} for {record.engineer_name}")
            if warn_duplicates:
                warnings.append(
                    ParseWarning(
                        message=(
                            f"{record.ticket_id} assigned to {record.engineer_name} "
                            "more than once; later assignment dropped"
                        ),
                        fragment=record.description,
                    )
                )
            continue
        tickets.add(record.ticket_id)
        grouped.setdefault(record.engineer_name, []).append(record)

    return {engineer: tuple(items) for engineer, items in grouped.items() if items}, warnings


# =============================================================================
# Lookup and summaries
# =============================================================================


def find_engineer(
    assignments: Mapping[str, tuple[AssignmentRecord, ...]], name: str
) -> tuple[str, tuple[AssignmentRecord, ...]]:
    """
    Look up one engineer's assignments by name.

    Matching is case-insensitive; an exact match wins, otherwise the first
    engineer whose name contains (or is contained in) the query.

    Raises:
        EngineerNotFoundError: If nobody matches
    """
    query = name.lower().strip()
    if query:
        for engineer, records in assignments.items():
            if engineer.lower() == query:
                return engineer, records
        for engineer, records in assignments.items():
            candidate = engineer.lower()
            if query in candidate or candidate in query:
                return engineer, records
    raise EngineerNotFoundError(name, list(assignments))


@dataclass(frozen=True)
class EngineerSummary:
    """Assignment counts for one engineer."""

    engineer: str
    task_count: int
    story_points: Optional[int] = None
    by_section: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "engineer": self.engineer,
            "task_count": self.task_count,
            "story_points": self.story_points,
            "by_section": dict(self.by_section),
        }


@dataclass(frozen=True)
class AssignmentSummary:
    """Overall counts for a parsed plan."""

    total_engineers: int
    total_tasks: int
    sections: tuple[str, ...] = ()
    by_section: dict[str, int] = field(default_factory=dict)
    engineers: tuple[EngineerSummary, ...] = ()

    def to_dict(self) -> dict:
        return {
            "total_engineers": self.total_engineers,
            "total_tasks": self.total_tasks,
            "sections": list(self.sections),
            "by_section": dict(self.by_section),
            "engineers": [e.to_dict() for e in self.engineers],
        }


UNSECTIONED = "Unsectioned"


def summarize(result: ParseResult) -> AssignmentSummary:
    """Count assignments per engineer and per section."""
    engineers = []
    by_section: dict[str, int] = {}

    for engineer, records in result.assignments_by_engineer.items():
        counts: dict[str, int] = {}
        for record in records:
            key = record.section or UNSECTIONED
            counts[key] = counts.get(key, 0) + 1
            by_section[key] = by_section.get(key, 0) + 1
        engineers.append(
            EngineerSummary(
                engineer=engineer,
                task_count=len(records),
                story_points=result.story_point_tally.get(engineer),
                by_section=counts,
            )
        )

    return AssignmentSummary(
        total_engineers=len(engineers),
        total_tasks=sum(e.task_count for e in engineers),
        sections=tuple(section.name.value for section in result.sections),
        by_section=by_section,
        engineers=tuple(engineers),
    )
