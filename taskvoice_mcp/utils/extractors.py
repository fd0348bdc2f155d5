"""Lexical extractors: priority, dates, status and title cleanup.

Every function here is pure. Date functions take ``now`` explicitly (defaulting
to the current time) so that identical input always yields identical output.
"""

import re
from calendar import monthrange
from datetime import date, datetime, time, timedelta

from taskvoice_mcp.enums import Priority, TaskStatus
from taskvoice_mcp.models.command import CommandFilters

# ============================================================================
# Priority
# ============================================================================

HIGH_KEYWORDS = ("urgent", "critical", "important", "asap", "high", "emergency")
LOW_KEYWORDS = ("low", "later", "someday", "whenever", "eventually")
MEDIUM_KEYWORDS = ("medium", "normal", "regular", "standard")

# Checked in this order; the first bucket with a hit wins.
PRIORITY_BUCKETS: tuple[tuple[Priority, tuple[str, ...]], ...] = (
    (Priority.HIGH, HIGH_KEYWORDS),
    (Priority.LOW, LOW_KEYWORDS),
    (Priority.MEDIUM, MEDIUM_KEYWORDS),
)

_NEGATED_HIGH = re.compile(
    r"\b(?:not|isn't|is\s+not|non)\s+(?:very\s+|that\s+|so\s+|too\s+)?(?:urgent|important|critical)\b"
    r"|\bno\s+rush\b"
)


def _bucket_pattern(words: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(words) + r")\b")


_BUCKET_PATTERNS = [(priority, _bucket_pattern(words)) for priority, words in PRIORITY_BUCKETS]


def extract_priority(text: str) -> Priority | None:
    """
    Find a priority keyword in free text.

    HIGH keywords are checked before LOW before MEDIUM, so "urgent, but later"
    is HIGH. Negated high phrases ("not urgent", "no rush") are LOW.

    Args:
        text: Any fragment of a transcript

    Returns:
        The matching Priority, or None when no bucket matches
    """
    lowered = text.lower()
    stripped = _NEGATED_HIGH.sub(" ", lowered)
    negated = stripped != lowered

    for priority, pattern in _BUCKET_PATTERNS:
        if pattern.search(stripped):
            return priority
    if negated:
        return Priority.LOW
    return None


def normalize_priority(word: str | None) -> Priority:
    """Map a single captured priority word to a Priority, defaulting to MEDIUM."""
    if not word:
        return Priority.MEDIUM
    return extract_priority(word) or Priority.MEDIUM


# ============================================================================
# Status
# ============================================================================

_STATUS_RULES: tuple[tuple[re.Pattern[str], TaskStatus], ...] = (
    (
        re.compile(
            r"\bnot\s+(?:yet\s+)?(?:done|finished|complete|completed|started)\b"
            r"|\b(?:incomplete|undone|unfinished|reopen|reopened)\b"
        ),
        TaskStatus.PENDING,
    ),
    (re.compile(r"\b(?:done|complete|completed|finished|finish)\b"), TaskStatus.COMPLETED),
    (re.compile(r"progress|\b(?:working|started|begin|doing|active)\b"), TaskStatus.IN_PROGRESS),
    (re.compile(r"\b(?:pending|todo|to\s+do|waiting)\b"), TaskStatus.PENDING),
)


def normalize_status(text: str) -> TaskStatus:
    """
    Fold status aliases into a TaskStatus.

    done/completed/finished -> completed; progress/working/started -> in_progress;
    pending/todo -> pending. Unrecognized text is treated as pending.
    """
    lowered = text.lower()
    for pattern, status in _STATUS_RULES:
        if pattern.search(lowered):
            return status
    return TaskStatus.PENDING


# ============================================================================
# Filters
# ============================================================================

_FILTER_STATUS = (
    (re.compile(r"\b(?:pending|todo|open)\b"), TaskStatus.PENDING),
    (re.compile(r"in[- ]?progress|\b(?:working|active|started)\b"), TaskStatus.IN_PROGRESS),
    (re.compile(r"\b(?:completed?|done|finished)\b"), TaskStatus.COMPLETED),
)

_FILTER_PRIORITY = (
    (re.compile(r"\b(?:high|urgent|important|critical)\b"), Priority.HIGH),
    (re.compile(r"\b(?:medium|normal)\b"), Priority.MEDIUM),
    (re.compile(r"\blow\b"), Priority.LOW),
)


def parse_filter(text: str) -> CommandFilters:
    """Read status and priority filter keywords; both may be present."""
    lowered = text.lower()
    status = next((s for p, s in _FILTER_STATUS if p.search(lowered)), None)
    priority = next((pr for p, pr in _FILTER_PRIORITY if p.search(lowered)), None)
    return CommandFilters(status=status, priority=priority)


# ============================================================================
# Dates
# ============================================================================

MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}  # fmt: skip

_FULL_MONTHS = "january|february|march|april|may|june|july|august|september|october|november|december"
_SHORT_MONTHS = "jan|feb|mar|apr|jun|jul|aug|sept|sep|oct|nov|dec"
_ORDINAL_SUFFIX = r"(?:st|nd|rd|th)?"

# (pattern, group order): "dm" = (day, month), "md" = (month, day), "dd/mm" = numeric
SPECIFIC_DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(rf"\b(\d{{1,2}}){_ORDINAL_SUFFIX}\s+(?:of\s+)?({_FULL_MONTHS})\b"), "dm"),
    (re.compile(rf"\b({_FULL_MONTHS})\s+(\d{{1,2}}){_ORDINAL_SUFFIX}\b"), "md"),
    (re.compile(rf"\b(\d{{1,2}}){_ORDINAL_SUFFIX}\s+({_SHORT_MONTHS})\b"), "dm"),
    (re.compile(rf"\b({_SHORT_MONTHS})\s+(\d{{1,2}}){_ORDINAL_SUFFIX}\b"), "md"),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})\b"), "dd/mm"),
)

# Longest phrases first so "day after tomorrow" is not read as "tomorrow".
RELATIVE_DAY_OFFSETS: tuple[tuple[str, int], ...] = (
    ("day after tomorrow", 2),
    ("day before yesterday", -2),
    ("next week", 7),
    ("tomorrow", 1),
    ("yesterday", -1),
    ("tonight", 0),
    ("today", 0),
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

TIME_OF_DAY = {
    "morning": time(9, 0),
    "afternoon": time(14, 0),
    "evening": time(18, 0),
    "night": time(20, 0),
    "tonight": time(20, 0),
}

_NEXT_MONTH = re.compile(r"\bnext\s+month\b")
_WEEKDAY = re.compile(r"\b(?:next\s+|this\s+|on\s+)?(" + "|".join(WEEKDAYS) + r")\b")
_CLOCK_TIME = re.compile(r"\b(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)(?=\W|$)")
_TIME_OF_DAY = re.compile(r"\b(" + "|".join(TIME_OF_DAY) + r")\b")
_RELATIVE = tuple((re.compile(rf"\b{re.escape(phrase)}\b"), offset) for phrase, offset in RELATIVE_DAY_OFFSETS)


def _calendar_date(day: int, month: int, today: date) -> date | None:
    """Build a date in the current year, rolled forward a year if already past."""
    try:
        candidate = date(today.year, month, day)
    except ValueError:
        return None
    if candidate < today:
        try:
            candidate = candidate.replace(year=today.year + 1)
        except ValueError:
            return None
    return candidate


def _specific_date(text: str, today: date) -> date | None:
    for pattern, order in SPECIFIC_DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        first, second = match.group(1), match.group(2)
        if order == "dm":
            day, month = int(first), MONTHS[second]
        elif order == "md":
            day, month = int(second), MONTHS[first]
        else:
            day, month = int(first), int(second)
        if not (1 <= day <= 31 and 1 <= month <= 12):
            continue
        resolved = _calendar_date(day, month, today)
        if resolved:
            return resolved
    return None


def _add_month(today: date) -> date:
    year = today.year + (1 if today.month == 12 else 0)
    month = 1 if today.month == 12 else today.month + 1
    return date(year, month, min(today.day, monthrange(year, month)[1]))


def _relative_date(text: str, today: date) -> date | None:
    if _NEXT_MONTH.search(text):
        return _add_month(today)
    for pattern, offset in _RELATIVE:
        if pattern.search(text):
            return today + timedelta(days=offset)
    return None


def _weekday_date(text: str, today: date) -> date | None:
    match = _WEEKDAY.search(text)
    if not match:
        return None
    days_ahead = (WEEKDAYS.index(match.group(1)) - today.weekday()) % 7
    return today + timedelta(days=days_ahead or 7)


def extract_time(text: str) -> time | None:
    """Clock time ("at 3pm", "10:30 am") or time-of-day word ("morning")."""
    lowered = text.lower()
    clock = _CLOCK_TIME.search(lowered)
    if clock:
        hour = int(clock.group(1))
        minute = int(clock.group(2) or 0)
        if 1 <= hour <= 12 and minute < 60:
            if clock.group(3).startswith("p") and hour != 12:
                hour += 12
            elif clock.group(3).startswith("a") and hour == 12:
                hour = 0
            return time(hour, minute)
    word = _TIME_OF_DAY.search(lowered)
    if word:
        return TIME_OF_DAY[word.group(1)]
    return None


def extract_date(text: str, now: datetime | None = None) -> str | None:
    """
    Extract a due date from free text.

    Specific calendar dates ("25th December", "Dec 25", "25/12" as DD/MM) win
    over relative keywords ("tomorrow", "next week"), which win over weekday
    names. Calendar dates already past this year roll to next year.

    Args:
        text: Any fragment of a transcript
        now: Reference time (default: current local time)

    Returns:
        ISO-8601 local datetime string (``YYYY-MM-DDTHH:MM:SS``) or None
    """
    lowered = text.lower()
    today = (now or datetime.now()).date()

    day = _specific_date(lowered, today) or _relative_date(lowered, today) or _weekday_date(lowered, today)
    if day is None:
        return None
    return datetime.combine(day, extract_time(lowered) or time(0, 0)).isoformat()


# ============================================================================
# Title cleanup
# ============================================================================

_TITLE_STRIP_PATTERNS: tuple[re.Pattern[str], ...] = (
    _NEGATED_HIGH,
    re.compile(r"\b(?:with\s+|as\s+|at\s+)?(?:a\s+)?(?:high|medium|low|top|normal)\s+priority\b"),
    re.compile(r"\bpriority\s+(?:high|medium|low)\b"),
    re.compile(r"\b(?:urgent|urgently|critical|important|asap|emergency)\b"),
    *(pattern for pattern, _ in SPECIFIC_DATE_PATTERNS),
    _NEXT_MONTH,
    *(pattern for pattern, _ in _RELATIVE),
    _WEEKDAY,
    _CLOCK_TIME,
    re.compile(r"\b(?:in\s+the\s+|this\s+|at\s+)?(?:morning|afternoon|evening|night)\b"),
)

_LEADING_VERBS = re.compile(
    r"^(?:please\s+)?(?:add|create|new|remind\s+me\s+to|i\s+need\s+to|a\s+task|task|to)\b\s*"
)

EDGE_WORDS = frozenset(
    {"on", "by", "for", "at", "due", "to", "in", "the", "this", "of", "before", "until", "with", "and", "a", "as"}
)


def clean_task_title(text: str) -> str:
    """
    Strip priority words, date expressions and command verbs from a fragment.

    Used to derive a task title from a create clause, or a clean search
    string for reference resolution.
    """
    cleaned = text.lower()
    for pattern in _TITLE_STRIP_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" ,.;:!?-")

    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _LEADING_VERBS.sub("", cleaned)
        words = cleaned.split()
        while words and words[0] in EDGE_WORDS:
            words.pop(0)
        while words and words[-1] in EDGE_WORDS:
            words.pop()
        cleaned = " ".join(words).strip(" ,.;:!?-")

    return cleaned
