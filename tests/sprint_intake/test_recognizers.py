"""
Tests for the entity recognizers: ticket ids, assignee notation, story points,
notes and task-name cleanup.
"""

from sprint_intake.recognizers import (
    TicketFamily,
    clean_task_name,
    expand_engineers,
    extract_all_story_points,
    extract_assignee_raw,
    extract_notes,
    extract_story_points,
    extract_ticket_id,
    find_ticket_ids,
    ticket_family,
    trim_separators,
)


class TestTicketIds:
    """Ticket id extraction with family preference."""

    def test_prefers_requirement_family_by_default(self):
        assert extract_ticket_id("CRE-3 implements cppf-12") == "CPPF-12"

    def test_prefers_implementation_family_when_asked(self):
        assert extract_ticket_id("CRE-3 implements CPPF-12", TicketFamily.CRE) == "CRE-3"

    def test_falls_back_to_other_family(self):
        """A lone id of the non-preferred family is still returned."""
        assert extract_ticket_id("only cre-77 here") == "CRE-77"

    def test_no_ticket_returns_none(self):
        assert extract_ticket_id("nothing to see") is None
        assert extract_ticket_id("") is None
        assert extract_ticket_id(None) is None

    def test_find_ticket_ids_is_distinct_and_ordered(self):
        assert find_ticket_ids("CRE-1 then CPPF-2 then cre-1") == ["CRE-1", "CPPF-2"]

    def test_ticket_family(self):
        assert ticket_family("CPPF-10") is TicketFamily.CPPF
        assert ticket_family("CRE-10") is TicketFamily.CRE
        assert ticket_family("JIRA-10") is None
        assert ticket_family(None) is None

    def test_family_other(self):
        assert TicketFamily.CPPF.other is TicketFamily.CRE
        assert TicketFamily.CRE.other is TicketFamily.CPPF


class TestAssigneeNotation:
    """Assignee notations and their expansion into engineer names."""

    def test_suffix_and_qualified_notations(self):
        raw = extract_assignee_raw("CRE-2000: DanhPIC + Web.AnhD + Android + iOS")
        assert raw == "DanhPIC, Web.AnhD"

    def test_dot_and_space_notations(self):
        raw = extract_assignee_raw("owned by Viet.PIC and Hoa PIC")
        assert raw == "Viet.PIC, Hoa PIC"
        assert expand_engineers(raw) == ("Viet", "Hoa")

    def test_lowercase_words_are_not_notations(self):
        """Words that merely contain "pic" are not assignees."""
        assert extract_assignee_raw("topic review for the epic") is None

    def test_notations_are_case_sensitive(self):
        """Lower-case notation is deliberately not an assignee."""
        assert extract_assignee_raw("danhpic and web.anhd") is None
        assert expand_engineers("danhpic") == ()

    def test_glued_ticket_number_not_part_of_name(self):
        assert extract_assignee_raw("CPPF-3DanhPIC") == "DanhPIC"
        assert expand_engineers(extract_assignee_raw("CPPF-3DanhPIC")) == ("Danh",)

    def test_qualifier_directly_after_ticket(self):
        assert extract_assignee_raw("CPPF-3Web.AnhD") == "Web.AnhD"

    def test_qualifier_inside_word_ignored(self):
        assert extract_assignee_raw("see WhatsApp.Share flow") is None

    def test_no_notation_returns_none(self):
        assert extract_assignee_raw("Improve onboarding CPPF-1") is None

    def test_expand_plus_joined_notation(self):
        assert expand_engineers("KunPIC + iOS + Web.AnhD") == ("Kun", "AnhD")

    def test_expand_skips_platform_words(self):
        assert expand_engineers("AndroidPIC, BE.Viet") == ("Viet",)

    def test_expand_deduplicates(self):
        assert expand_engineers("KunPIC, Kun PIC") == ("Kun",)

    def test_expand_empty(self):
        assert expand_engineers(None) == ()
        assert expand_engineers("") == ()


class TestStoryPoints:
    """Per-engineer and document-wide story point declarations."""

    def test_explicit_confident_declaration(self):
        assert extract_story_points("@Kun: confident: 3 SP", "Kun") == 3

    def test_loose_declaration(self):
        assert extract_story_points("@Kun: maybe 5 SP", "Kun") == 5

    def test_bare_points_when_name_present(self):
        assert extract_story_points("Kun takes 2 SP", "Kun") == 2

    def test_bare_points_for_someone_else(self):
        assert extract_story_points("Hoa takes 2 SP", "Kun") is None

    def test_missing_inputs(self):
        assert extract_story_points("", "Kun") is None
        assert extract_story_points("@Kun: confident: 3 SP", None) is None

    def test_all_declarations_last_one_wins(self):
        text = "@Kun: confident: 3 SP ... @Kun: confident 5 SP ... @Hoa: confident, 2SP"
        assert extract_all_story_points(text) == {"Kun": 5, "Hoa": 2}

    def test_all_declarations_empty(self):
        assert extract_all_story_points("no estimates") == {}


class TestNotes:
    """Note-shaped remarks inside an item."""

    def test_notes_in_document_order(self):
        notes = extract_notes("Fix CPPF-1 → Sprint 42\nPM: needs design")
        assert notes == ["→ Sprint 42", "PM: needs design"]

    def test_release_date(self):
        notes = extract_notes("Checkout CPPF-3 released on 01/02/2024")
        assert notes == ["released on 01/02/2024"]

    def test_notes_stop_at_markup(self):
        notes = extract_notes("Search CPPF-4<br/>PM: ship behind a flag<ol><li>CRE-1</li></ol>")
        assert notes == ["PM: ship behind a flag"]

    def test_no_notes(self):
        assert extract_notes("Plain item CPPF-5") == []
        assert extract_notes(None) == []


class TestTaskNames:
    """Task name cleanup."""

    def test_removes_ids_and_annotations(self):
        raw = "[iOS][Android] Improve onboarding (phase 2)  CPPF-1000 - "
        assert clean_task_name(raw) == "Improve onboarding"

    def test_collapses_whitespace(self):
        assert clean_task_name("Fix \n  login\tbug") == "Fix login bug"

    def test_empty(self):
        assert clean_task_name(None) == ""
        assert clean_task_name("CPPF-1") == ""

    def test_trim_separators(self):
        assert trim_separators(" : - Fix login | ") == "Fix login"
