"""
Tests for the assignment aggregator: task expansion, deduplication, engineer
lookup and summaries.
"""

import pytest

from sprint_intake.aggregator import (
    aggregate_sections,
    dedupe_assignments,
    expand_task,
    find_engineer,
    summarize,
)
from sprint_intake.errors import EngineerNotFoundError
from sprint_intake.intake import SprintIntake
from sprint_intake.models import AssignmentRecord, Section, SectionName, Task


ONBOARDING = Task(
    primary_ticket_id="CPPF-1000",
    child_ticket_id="CRE-2000",
    name="Improve onboarding flow",
    assignee_raw="DanhPIC, Web.AnhD",
)

CACHE_CLEANUP = Task(
    primary_ticket_id="CRE-3000",
    name="",
    assignee_raw="BE.Viet",
)

PAGE = (
    "<p><code>TO BE RELEASED</code></p>"
    "<ol><li>Improve onboarding flow CPPF-1000"
    "<ol><li>CRE-2000: DanhPIC + Web.AnhD</li></ol>"
    "</li></ol>"
    "<p><code>Techdebt</code></p>"
    "<ol><li>CRE-3000 - Refactor cache layer (BE.Viet) @Viet: confident: 2 SP</li></ol>"
)


def record(engineer, ticket, description="desc"):
    return AssignmentRecord(engineer_name=engineer, ticket_id=ticket, description=description)


class TestExpandTask:
    """One record per engineer in a task."""

    def test_child_ticket_is_assigned(self):
        section = Section(name=SectionName.TO_BE_RELEASED, tasks=(ONBOARDING,))
        records = expand_task(ONBOARDING, section)
        assert [r.engineer_name for r in records] == ["Danh", "AnhD"]
        assert all(r.ticket_id == "CRE-2000" for r in records)
        assert all(r.parent_ticket_id == "CPPF-1000" for r in records)
        assert records[0].description == "Improve onboarding flow"
        assert records[0].section == "ToBeReleased"
        assert records[0].assignment_text == "DanhPIC, Web.AnhD"

    def test_without_child_primary_is_assigned(self):
        section = Section(name=SectionName.TECH_DEBT, tasks=(CACHE_CLEANUP,))
        (only,) = expand_task(CACHE_CLEANUP, section)
        assert only.engineer_name == "Viet"
        assert only.ticket_id == "CRE-3000"
        assert only.parent_ticket_id is None
        assert only.description == "No description"

    def test_unassigned_task_expands_to_nothing(self):
        task = Task(primary_ticket_id="CPPF-1", name="Nobody yet")
        section = Section(name=SectionName.NEW_FOR_NEXT_SPRINT, tasks=(task,))
        assert expand_task(task, section) == []


class TestDedupe:
    """Per-engineer deduplication by ticket id."""

    def test_first_record_wins(self):
        first = record("Kun", "CRE-1", "first")
        second = record("Kun", "CRE-1", "second")
        grouped, warnings = dedupe_assignments([first, second])
        assert grouped == {"Kun": (first,)}
        assert warnings == []

    def test_same_ticket_for_different_engineers_kept(self):
        grouped, _ = dedupe_assignments([record("Kun", "CRE-1"), record("Hoa", "CRE-1")])
        assert list(grouped) == ["Kun", "Hoa"]

    def test_accepts_mapping(self):
        mapping = {"Kun": [record("Kun", "CRE-1"), record("Kun", "CRE-1")], "Hoa": []}
        grouped, _ = dedupe_assignments(mapping)
        assert list(grouped) == ["Kun"]
        assert len(grouped["Kun"]) == 1

    def test_warns_when_enabled(self):
        _, warnings = dedupe_assignments(
            [record("Kun", "CRE-1"), record("Kun", "CRE-1")], warn_duplicates=True
        )
        assert len(warnings) == 1
        assert "CRE-1" in warnings[0].message

    def test_aggregate_sections(self):
        sections = [
            Section(name=SectionName.TO_BE_RELEASED, tasks=(ONBOARDING,)),
            Section(name=SectionName.TECH_DEBT, tasks=(CACHE_CLEANUP,)),
        ]
        grouped, warnings = aggregate_sections(sections)
        assert list(grouped) == ["Danh", "AnhD", "Viet"]
        assert warnings == []


class TestFindEngineer:
    """Engineer lookup by name."""

    ASSIGNMENTS = {
        "Kun": (record("Kun", "CRE-1"),),
        "AnhD": (record("AnhD", "CRE-2"),),
        "Anh": (record("Anh", "CRE-3"),),
    }

    def test_exact_match_case_insensitive(self):
        name, records = find_engineer(self.ASSIGNMENTS, "anh")
        assert name == "Anh"
        assert records[0].ticket_id == "CRE-3"

    def test_partial_match(self):
        name, _ = find_engineer(self.ASSIGNMENTS, "ku")
        assert name == "Kun"

    def test_not_found(self):
        with pytest.raises(EngineerNotFoundError) as exc_info:
            find_engineer(self.ASSIGNMENTS, "Zed")
        message = str(exc_info.value)
        assert '"Zed" not found' in message
        assert "Kun, AnhD, Anh" in message

    def test_not_found_is_lookup_error(self):
        with pytest.raises(LookupError):
            find_engineer({}, "Kun")

    def test_empty_query_matches_nobody(self):
        with pytest.raises(EngineerNotFoundError):
            find_engineer(self.ASSIGNMENTS, "  ")


class TestSummarize:
    """Per-engineer and per-section counts."""

    def test_summary_counts(self):
        summary = summarize(SprintIntake.parse(PAGE))
        assert summary.total_engineers == 3
        assert summary.total_tasks == 3
        assert summary.sections == ("ToBeReleased", "TechDebt")
        assert summary.by_section == {"ToBeReleased": 2, "TechDebt": 1}

    def test_engineer_summary(self):
        summary = summarize(SprintIntake.parse(PAGE))
        viet = [e for e in summary.engineers if e.engineer == "Viet"][0]
        assert viet.task_count == 1
        assert viet.story_points == 2
        assert viet.by_section == {"TechDebt": 1}

    def test_legacy_records_counted_as_unsectioned(self):
        summary = summarize(SprintIntake.parse("Kun: fix payment callback CPPF-12"))
        assert summary.by_section == {"Unsectioned": 1}
        assert summary.sections == ()

    def test_summary_to_dict(self):
        data = summarize(SprintIntake.parse(PAGE)).to_dict()
        assert data["total_tasks"] == 3
        assert {e["engineer"] for e in data["engineers"]} == {"Danh", "AnhD", "Viet"}
