"""Task reference resolution: map a spoken fragment to a known task."""

import re
from typing import Literal, NamedTuple

from taskvoice_mcp.models.task import TaskModel

ResolutionMethod = Literal["id", "ordinal", "exact", "substring", "keyword"]

ORDINALS = {
    "first": 1, "1st": 1,
    "second": 2, "2nd": 2,
    "third": 3, "3rd": 3,
    "fourth": 4, "4th": 4,
    "fifth": 5, "5th": 5,
    "sixth": 6, "6th": 6,
    "seventh": 7, "7th": 7,
    "eighth": 8, "8th": 8,
    "ninth": 9, "9th": 9,
    "tenth": 10, "10th": 10,
}  # fmt: skip

# Words dropped from a fragment before any tier looks at it.
FILLER_WORDS = frozenset({"the", "my", "a", "an", "one", "item", "that", "this"})

# Words ignored by the keyword-overlap tier.
STOPWORDS = frozenset(
    {
        "update", "mark", "set", "task", "tasks", "the", "change", "make", "delete", "remove", "cancel",
        "and", "for", "with", "as", "to", "from", "that", "this", "priority", "status", "due", "date",
        "done", "completed", "complete", "pending", "progress", "one", "item", "please",
    }
)  # fmt: skip

KEYWORD_OVERLAP_RATIO = 0.6
MIN_KEYWORD_LENGTH = 3

_NUMERIC_REFERENCE = re.compile(r"^(?:task(?:\s*_\s*|\s+)(?:number\s+)?|number\s+|no\.?\s*|#\s*)?(\d+)$")
_TASK_WORD = re.compile(r"\btasks?\b")
_POSITIONAL_ID = re.compile(r"^task_(\d+)$")


class Resolution(NamedTuple):
    """A resolved reference and the tier that produced it."""

    task: TaskModel
    method: ResolutionMethod


def _normalize(fragment: str) -> str:
    words = [w for w in re.sub(r"[^\w\s#'-]", " ", fragment.lower()).split() if w not in FILLER_WORDS]
    return " ".join(words)


def _by_position(position: int, tasks: list[TaskModel]) -> TaskModel | None:
    if 1 <= position <= len(tasks):
        return tasks[position - 1]
    return None


def _numeric_position(text: str) -> int | None:
    match = _NUMERIC_REFERENCE.match(text)
    return int(match.group(1)) if match else None


def _ordinal_position(text: str, total: int) -> int | None:
    bare = _TASK_WORD.sub(" ", text).strip()
    if bare in ORDINALS:
        return ORDINALS[bare]
    if bare == "last" and total:
        return total
    return None


def _keywords(text: str) -> set[str]:
    return {w for w in re.findall(r"[a-z0-9']+", text.lower()) if len(w) >= MIN_KEYWORD_LENGTH and w not in STOPWORDS}


def resolve_task_reference(fragment: str | None, tasks: list[TaskModel]) -> Resolution | None:
    """
    Resolve a free-text fragment to one task.

    Tiers, first success wins and a tier that recognises the fragment's form
    but finds nothing ends the search:
    1. numeric reference ("task 2", "task_2", "#2", "2") by 1-indexed position
    2. ordinal word ("second", "2nd task", "last")
    3. exact title, case-insensitive
    4. substring in either direction
    5. keyword overlap of at least 60% of the smaller keyword set

    Args:
        fragment: Spoken reference, e.g. "the grocery task"
        tasks: Task snapshot in display order

    Returns:
        Resolution(task, method) or None when nothing matches
    """
    if not fragment or not tasks:
        return None

    text = _normalize(fragment)
    if not text:
        return None

    position = _numeric_position(text)
    if position is not None:
        task = _by_position(position, tasks)
        return Resolution(task, "id") if task else None

    position = _ordinal_position(text, len(tasks))
    if position is not None:
        task = _by_position(position, tasks)
        return Resolution(task, "ordinal") if task else None

    for task in tasks:
        if task.title.lower().strip() == text:
            return Resolution(task, "exact")

    search = _TASK_WORD.sub(" ", text)
    search = " ".join(search.split())
    if search:
        for task in tasks:
            title = task.title.lower().strip()
            if title and (search in title or title in search):
                return Resolution(task, "substring")

    search_words = _keywords(text)
    if search_words:
        for task in tasks:
            title_words = _keywords(task.title)
            if not title_words:
                continue
            overlap = len(search_words & title_words)
            if overlap and overlap >= KEYWORD_OVERLAP_RATIO * min(len(search_words), len(title_words)):
                return Resolution(task, "keyword")

    return None


def find_task_by_name(fragment: str | None, tasks: list[TaskModel]) -> TaskModel | None:
    """Resolve a fragment through every tier and return the task, or None."""
    resolution = resolve_task_reference(fragment, tasks)
    return resolution.task if resolution else None


def find_task_by_ordinal_or_number(fragment: str | None, tasks: list[TaskModel]) -> TaskModel | None:
    """Resolve only positional references ("task 3", "third", "3rd")."""
    if not fragment or not tasks:
        return None
    text = _normalize(fragment)
    position = _numeric_position(text)
    if position is None:
        position = _ordinal_position(text, len(tasks))
    return _by_position(position, tasks) if position is not None else None


def find_task_by_id(task_id: str | None, tasks: list[TaskModel]) -> TaskModel | None:
    """Match a literal id, then the positional ``task_<n>`` form."""
    if not task_id:
        return None
    for task in tasks:
        if task.id == task_id:
            return task
    match = _POSITIONAL_ID.match(task_id.strip().lower())
    if match:
        return _by_position(int(match.group(1)), tasks)
    return None
