"""
Entity Recognizers

Pure pattern matchers over a text fragment: ticket ids, assignee notation,
story points and notes, plus the task-name cleaner. Every function here
returns None or an empty collection when nothing matches; none of them raise.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional


class TicketFamily(Enum):
    """Ticket-id namespaces referenced by planning documents."""

    CPPF = "CPPF"  # requirement family
    CRE = "CRE"  # implementation family

    @property
    def other(self) -> TicketFamily:
        return TicketFamily.CRE if self is TicketFamily.CPPF else TicketFamily.CPPF


TICKET_PATTERNS = {
    TicketFamily.CPPF: re.compile(r"CPPF-\d+", re.IGNORECASE),
    TicketFamily.CRE: re.compile(r"CRE-\d+", re.IGNORECASE),
}

ANY_TICKET_PATTERN = re.compile(r"(?:CPPF|CRE)-\d+", re.IGNORECASE)

# Qualifiers that prefix an engineer name, e.g. "Web.AnhD", "BE.Viet"
PLATFORM_QUALIFIERS = ("Web", "BE", "App")

# Tokens that look like names in assignee lists but denote platforms
PLATFORM_WORDS = frozenset({"Android", "iOS", "Web", "Backend", "BE", "App", "PIC"})

# Letters only, so a glued ticket number ("CPPF-3DanhPIC") stays out of the name
_NAME = r"[^\W\d_]+"

# Ordered battery of assignee notations: (pattern, how the match is rendered)
ASSIGNEE_NOTATIONS = (
    (re.compile(rf"({_NAME})PIC(?!\w)"), "{}PIC"),
    (re.compile(rf"({_NAME})\.PIC(?!\w)"), "{}.PIC"),
    *(
        (re.compile(rf"(?<![^\W\d_]){qualifier}\.({_NAME})"), qualifier + ".{}")
        for qualifier in PLATFORM_QUALIFIERS
    ),
    (re.compile(rf"({_NAME})[^\S\n]+PIC(?!\w)"), "{} PIC"),
)

# The same notations anchored to a single rendered token, name in group 1
_NOTATION_NAMES = (
    re.compile(rf"({_NAME})PIC"),
    re.compile(rf"({_NAME})\.PIC"),
    re.compile(r"(?:%s)\.(%s)" % ("|".join(PLATFORM_QUALIFIERS), _NAME)),
    re.compile(rf"({_NAME})\s+PIC"),
)

_NOTATION_SPLIT = re.compile(r"\s*[,+]\s*")

_BARE_STORY_POINTS = re.compile(r"(\d+)\s*SP\b", re.IGNORECASE)

_ALL_STORY_POINTS = re.compile(
    r"@(\w+):\s*confident[:,]?\s*(\d+)\s*SP\b", re.IGNORECASE
)

# Note-shaped remarks. The lookahead stops a note at the next tag or line end
# so the patterns work on both item markup and plain text.
_NOTE_END = r"(?=\s*(?:<|$))"

NOTE_PATTERNS = {
    "release_date": re.compile(
        rf"released on \d{{2}}/\d{{2}}/\d{{4}}|release .*?{_NOTE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
    "timeline": re.compile(
        rf"Preferred timeline to Prod:.*?Asap.*?{_NOTE_END}|→.*?{_NOTE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
    "thread_link": re.compile(r"Thread link HERE", re.IGNORECASE),
    "comment": re.compile(
        rf"PM:.*?{_NOTE_END}|\?\?!!.*?{_NOTE_END}|@.*?:.*?{_NOTE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
}

_SQUARE_ANNOTATION = re.compile(r"\[.*?\]")
_PAREN_ANNOTATION = re.compile(r"\(.*?\)")
_WHITESPACE_RUN = re.compile(r"\s+")
_LEADING_SEPARATORS = re.compile(r"^[-–—:|\s]+")
_TRAILING_SEPARATORS = re.compile(r"[-–—:|\s]+$")


# =============================================================================
# Ticket ids
# =============================================================================


def ticket_family(ticket_id: Optional[str]) -> Optional[TicketFamily]:
    """Return the family a ticket id belongs to, or None."""
    if not ticket_id:
        return None
    for family, pattern in TICKET_PATTERNS.items():
        if pattern.fullmatch(ticket_id):
            return family
    return None


def extract_ticket_id(
    text: Optional[str], prefer: TicketFamily = TicketFamily.CPPF
) -> Optional[str]:
    """
    Extract the first ticket id from text.

    Args:
        text: Fragment to scan
        prefer: Family to return when both families are present

    Returns:
        Upper-cased ticket id, or None when no id is present
    """
    if not text:
        return None

    preferred = TICKET_PATTERNS[prefer].search(text)
    if preferred:
        return preferred.group(0).upper()

    fallback = TICKET_PATTERNS[prefer.other].search(text)
    if fallback:
        return fallback.group(0).upper()

    return None


def find_ticket_ids(text: Optional[str]) -> list[str]:
    """All distinct ticket ids of either family, in order of appearance."""
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in ANY_TICKET_PATTERN.finditer(text):
        seen.setdefault(match.group(0).upper(), None)
    return list(seen)


# =============================================================================
# Assignees
# =============================================================================


def extract_assignee_raw(text: Optional[str]) -> Optional[str]:
    """
    Collect every assignee notation found in text.

    Notations are gathered pattern by pattern, deduplicated, and joined with
    ", " (e.g. "DanhPIC, Web.AnhD").
    """
    if not text:
        return None

    notations: dict[str, None] = {}
    for pattern, template in ASSIGNEE_NOTATIONS:
        for match in pattern.finditer(text):
            notations.setdefault(template.format(match.group(1)), None)

    return ", ".join(notations) if notations else None


def expand_engineers(assignee_raw: Optional[str]) -> tuple[str, ...]:
    """
    Map an assignee notation string to distinct engineer names.

    Accepts the ", "-joined output of extract_assignee_raw as well as
    "+"-joined notation written by hand.
    """
    if not assignee_raw:
        return ()

    names: dict[str, None] = {}
    for token in _NOTATION_SPLIT.split(assignee_raw.strip()):
        for pattern in _NOTATION_NAMES:
            match = pattern.fullmatch(token)
            if match and match.group(1) not in PLATFORM_WORDS:
                names.setdefault(match.group(1), None)
                break
    return tuple(names)


# =============================================================================
# Story points
# =============================================================================


def extract_story_points(text: Optional[str], engineer_name: Optional[str]) -> Optional[int]:
    """
    Find the story-point estimate declared for one engineer.

    Tries "@Name: confident: N SP", then "@Name: ... N SP", then a bare
    "N SP" when the engineer's name appears anywhere in the text.
    """
    if not text or not engineer_name:
        return None

    name = re.escape(engineer_name)
    explicit = re.search(
        rf"@{name}:\s*confident:\s*(\d+)\s*SP\b", text, re.IGNORECASE
    )
    if explicit:
        return int(explicit.group(1))

    loose = re.search(rf"@{name}:.*?(\d+)\s*SP\b", text, re.IGNORECASE)
    if loose:
        return int(loose.group(1))

    if engineer_name.lower() in text.lower():
        bare = _BARE_STORY_POINTS.search(text)
        if bare:
            return int(bare.group(1))

    return None


def extract_all_story_points(text: Optional[str]) -> dict[str, int]:
    """Every "@Name: confident N SP" declaration; later ones overwrite earlier."""
    if not text:
        return {}
    points: dict[str, int] = {}
    for match in _ALL_STORY_POINTS.finditer(text):
        points[match.group(1)] = int(match.group(2))
    return points


# =============================================================================
# Notes
# =============================================================================


def extract_notes(text: Optional[str]) -> list[str]:
    """Note-shaped remarks (release dates, timelines, comments) in order of appearance."""
    if not text:
        return []

    found: dict[tuple[int, str], None] = {}
    for pattern in NOTE_PATTERNS.values():
        for match in pattern.finditer(text):
            note = match.group(0).strip()
            if note:
                found.setdefault((match.start(), note), None)

    return [note for _, note in sorted(found, key=lambda key: key[0])]


# =============================================================================
# Task names
# =============================================================================


def trim_separators(text: str) -> str:
    """Strip leading and trailing dash/colon/pipe/whitespace runs."""
    text = _LEADING_SEPARATORS.sub("", text)
    return _TRAILING_SEPARATORS.sub("", text).strip()


def clean_task_name(raw: Optional[str]) -> str:
    """
    Turn a raw item fragment into a readable task name.

    Removes ticket ids of both families and [..]/(..) annotations, collapses
    whitespace and trims separator runs at either end.
    """
    if not raw:
        return ""

    name = ANY_TICKET_PATTERN.sub("", raw)
    name = _SQUARE_ANNOTATION.sub("", name)
    name = _PAREN_ANNOTATION.sub("", name)
    name = _WHITESPACE_RUN.sub(" ", name)
    return trim_separators(name)
