"""
Sprint Intake - Turns sprint planning documents into engineer assignments.

This package reads a planning page (rich-text markup or free text),
recovers its sections and tasks, and projects them onto a per-engineer
view of who owns which ticket.
"""

from sprint_intake.intake import (
    SprintIntake,
    parse,
    detect_format,
)
from sprint_intake.models import (
    InputFormat,
    SectionName,
    Task,
    Section,
    AssignmentRecord,
    ParseWarning,
    ParseResult,
    match_section_title,
)
from sprint_intake.recognizers import (
    TicketFamily,
    extract_ticket_id,
    find_ticket_ids,
    extract_assignee_raw,
    expand_engineers,
    extract_story_points,
    extract_all_story_points,
    extract_notes,
    clean_task_name,
)
from sprint_intake.structured import (
    StructuredWalker,
    StructuredOutcome,
)
from sprint_intake.legacy import (
    LegacyWalker,
    LegacyOutcome,
)
from sprint_intake.aggregator import (
    aggregate_sections,
    dedupe_assignments,
    find_engineer,
    summarize,
    AssignmentSummary,
    EngineerSummary,
)
from sprint_intake.config import (
    IntakeConfig,
    DEFAULT_CONFIG,
    load_config_from_pyproject,
)
from sprint_intake.errors import (
    SprintIntakeError,
    InvalidInputError,
    EngineerNotFoundError,
    ConfigError,
)

__all__ = [
    # intake
    "SprintIntake",
    "parse",
    "detect_format",
    # models
    "InputFormat",
    "SectionName",
    "Task",
    "Section",
    "AssignmentRecord",
    "ParseWarning",
    "ParseResult",
    "match_section_title",
    # recognizers
    "TicketFamily",
    "extract_ticket_id",
    "find_ticket_ids",
    "extract_assignee_raw",
    "expand_engineers",
    "extract_story_points",
    "extract_all_story_points",
    "extract_notes",
    "clean_task_name",
    # structured
    "StructuredWalker",
    "StructuredOutcome",
    # legacy
    "LegacyWalker",
    "LegacyOutcome",
    # aggregator
    "aggregate_sections",
    "dedupe_assignments",
    "find_engineer",
    "summarize",
    "AssignmentSummary",
    "EngineerSummary",
    # config
    "IntakeConfig",
    "DEFAULT_CONFIG",
    "load_config_from_pyproject",
    # errors
    "SprintIntakeError",
    "InvalidInputError",
    "EngineerNotFoundError",
    "ConfigError",
]
