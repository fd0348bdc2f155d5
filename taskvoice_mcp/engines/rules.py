"""Rule-based command parser: the deterministic engine used when no LLM answers.

A transcript is split on the word "and" into clauses. Each clause runs through
``RULE_TIERS`` in ``TIER_ORDER``; inside a tier, rules are tried in order and the
first rule whose pattern matches and whose builder returns a command wins. A
builder may decline by returning None, which hands the clause to the next rule.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from taskvoice_mcp.enums import Action, ParserUsed, Priority, Target, TaskStatus
from taskvoice_mcp.models.command import (
    UNRESOLVED_CONFIDENCE_CEILING,
    Command,
    CommandFilters,
    CommandUpdates,
    ParsedResult,
)
from taskvoice_mcp.models.task import TaskContext
from taskvoice_mcp.utils.extractors import (
    clean_task_title,
    extract_date,
    extract_priority,
    normalize_priority,
    normalize_status,
    parse_filter,
)
from taskvoice_mcp.utils.formatters import build_interpretation
from taskvoice_mcp.utils.resolver import resolve_task_reference

logger = logging.getLogger(__name__)

Builder = Callable[[re.Match[str], str, TaskContext], Command | None]


@dataclass(frozen=True)
class Rule:
    """One pattern and the builder that turns its match into a command."""

    pattern: re.Pattern[str]
    build: Builder


# ============================================================================
# Shared pattern pieces
# ============================================================================

_STATUS = r"(pending|todo|to\s+do|in[- ]?progress|completed?|done|finished|not\s+done|incomplete)"
_PRIORITY = r"(high|medium|low|urgent|important|critical|normal)"
_TASKS = r"(?:\s+(?:of\s+)?(?:the\s+|my\s+)?tasks?)?"
# Generic tail patterns must not swallow questions such as "what is done".
_NOT_READ = r"(?!(?:show|list|read|display|tell|give|what|which|how)\b)"

_FILTER_ONLY = re.compile(
    r"^(?:(?:pending|todo|open|completed?|done|finished|in[- ]?progress|active|high|medium|low|urgent"
    r"|important|critical|normal|priority|the|my|of)\s*)+$"
)
_READ_SUBJECT = re.compile(
    r"\b(?:tasks?|todos?|to-?dos?|list|agenda|pending|completed?|done|finished|in[- ]?progress|priority"
    r"|high|medium|low|urgent)\b"
)
_LEADING_FILLER = re.compile(
    r"^(?:please|can\s+you|could\s+you|would\s+you|will\s+you|hey|okay|ok|so|then|also|now)\b[\s,]*"
)
_TRAILING_FILLER = re.compile(r"[\s,]+(?:please|thanks|thank\s+you)$")
_CLAUSE_SPLIT = re.compile(r"\s+and\s+")
_REFERENCE_NOISE = re.compile(r"\b(?:the|my|task)\b")

ALL_CONFIDENCE = 0.95
FILTERED_CONFIDENCE = 0.9
RESOLVED_CONFIDENCE = 0.9
DELETE_RESOLVED_CONFIDENCE = 0.85
DATE_RESOLVED_CONFIDENCE = 0.8
DATE_UNRESOLVED_CONFIDENCE = 0.5


def _rule(pattern: str, build: Builder) -> Rule:
    return Rule(re.compile(pattern), build)


def _filters_from(phrase: str | None) -> CommandFilters | None:
    """Filters for a phrase made only of filter words; None when it has anything else."""
    if not phrase:
        return CommandFilters()
    phrase = phrase.strip()
    if not _FILTER_ONLY.match(phrase):
        return None
    return parse_filter(phrase)


def _reference_title(fragment: str) -> str:
    title = " ".join(_REFERENCE_NOISE.sub(" ", fragment).split())
    return title or fragment.strip()


def _reference_command(
    action: Action,
    fragment: str,
    context: TaskContext,
    updates: CommandUpdates | None = None,
    resolved_confidence: float = RESOLVED_CONFIDENCE,
    unresolved_confidence: float = UNRESOLVED_CONFIDENCE_CEILING,
) -> Command:
    """Build a single-task command, resolving the fragment against the context."""
    resolution = resolve_task_reference(fragment, context.tasks)
    if resolution:
        return Command(
            action=action,
            target=Target.SINGLE,
            task_id=resolution.task.id,
            task_title=resolution.task.title,
            updates=updates or CommandUpdates(),
            confidence=resolved_confidence,
        )
    return Command(
        action=action,
        target=Target.SINGLE,
        task_title=_reference_title(fragment),
        updates=updates or CommandUpdates(),
        confidence=min(unresolved_confidence, UNRESOLVED_CONFIDENCE_CEILING),
    )


# ============================================================================
# Builders
# ============================================================================


def _build_create(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    raw_title = match.group(1).strip()
    title = clean_task_title(raw_title) or raw_title
    priority = extract_priority(raw_title)
    due_date = extract_date(raw_title, context.now)
    return Command(
        action=Action.CREATE,
        target=Target.SINGLE,
        task_title=title,
        updates=CommandUpdates(priority=priority, due_date=due_date),
        confidence=0.8,
    )


def _build_delete_all(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    return Command(action=Action.DELETE_ALL, target=Target.ALL, confidence=1.0)


def _build_delete_filtered(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    filters = _filters_from(match.group(1))
    if filters is None or filters.is_empty:
        return None
    return Command(action=Action.DELETE_ALL, target=Target.FILTERED, filters=filters, confidence=FILTERED_CONFIDENCE)


def _build_delete_single(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    return _reference_command(
        Action.DELETE,
        match.group(1),
        context,
        resolved_confidence=DELETE_RESOLVED_CONFIDENCE,
    )


def _status_for_all(status: TaskStatus) -> Builder:
    def build(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
        return _bulk_update(match.group(1), CommandUpdates(status=status))

    return build


def _bulk_update(filter_phrase: str | None, updates: CommandUpdates) -> Command | None:
    filters = _filters_from(filter_phrase)
    if filters is None:
        return None
    if filters.is_empty:
        return Command(action=Action.UPDATE_ALL, target=Target.ALL, updates=updates, confidence=ALL_CONFIDENCE)
    return Command(
        action=Action.UPDATE_ALL,
        target=Target.FILTERED,
        filters=filters,
        updates=updates,
        confidence=FILTERED_CONFIDENCE,
    )


def _build_update_all_status(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    return _bulk_update(match.group(1), CommandUpdates(status=normalize_status(match.group(2))))


def _build_update_status(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    updates = CommandUpdates(
        status=normalize_status(match.group(2)),
        due_date=extract_date(clause, context.now),
    )
    return _reference_command(Action.UPDATE, match.group(1), context, updates)


def _status_for_single(status: TaskStatus) -> Builder:
    def build(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
        updates = CommandUpdates(status=status, due_date=extract_date(clause, context.now))
        return _reference_command(Action.UPDATE, match.group(1), context, updates)

    return build


def _build_update_all_priority(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    return _bulk_update(match.group(1), CommandUpdates(priority=normalize_priority(match.group(2))))


def _build_update_priority(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    groups = match.groups()
    trailing = groups[2] if len(groups) > 2 else None
    updates = CommandUpdates(
        priority=normalize_priority(groups[1]),
        due_date=extract_date(trailing, context.now) if trailing else None,
    )
    return _reference_command(Action.UPDATE, groups[0], context, updates)


def _build_prioritize(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    return _reference_command(Action.UPDATE, match.group(1), context, CommandUpdates(priority=Priority.HIGH))


def _build_update_due_date(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    due_date = extract_date(match.group(2), context.now)
    if due_date is None:
        return None
    return _reference_command(
        Action.UPDATE,
        match.group(1),
        context,
        CommandUpdates(due_date=due_date),
        resolved_confidence=DATE_RESOLVED_CONFIDENCE,
        unresolved_confidence=DATE_UNRESOLVED_CONFIDENCE,
    )


def _build_read(match: re.Match[str], clause: str, context: TaskContext) -> Command | None:
    subject = match.group(1)
    if not _READ_SUBJECT.search(subject):
        return None
    filters = parse_filter(subject)
    target = Target.ALL if filters.is_empty else Target.FILTERED
    return Command(action=Action.READ, target=target, filters=filters, confidence=0.9)


# ============================================================================
# Tier table
# ============================================================================

TIER_ORDER = (
    "create",
    "delete_all",
    "delete_filtered",
    "delete_single",
    "update_all_status",
    "update_status",
    "update_priority",
    "update_due_date",
    "read",
)

RULE_TIERS: tuple[tuple[str, tuple[Rule, ...]], ...] = (
    (
        "create",
        (
            _rule(r"^(?:add|create|new)\s+(?:a\s+)?(?:new\s+)?(?:task\b\s*:?\s*)?(.+)$", _build_create),
            _rule(r"^remind\s+me\s+(?:to\s+)?(.+)$", _build_create),
            _rule(r"^i\s+(?:need|have|want)\s+to\s+(.+)$", _build_create),
        ),
    ),
    (
        "delete_all",
        (
            _rule(rf"^(?:delete|remove|clear|erase)\s+(?:all|everything){_TASKS}(?:\s+from\s+(?:the\s+|my\s+)?list)?$",
                  _build_delete_all),
            _rule(r"^(?:clear|empty)\s+(?:the\s+|my\s+)?(?:task\s+)?list$", _build_delete_all),
        ),
    ),
    (
        "delete_filtered",
        (
            _rule(r"^(?:delete|remove|clear|erase)\s+all\s+(?:of\s+)?(?:the\s+|my\s+)?(.+?)(?:\s+tasks?)?$",
                  _build_delete_filtered),
            _rule(r"^(?:delete|remove|clear|erase)\s+(?:the\s+|my\s+)?(.+?)\s+tasks$", _build_delete_filtered),
        ),
    ),
    (
        "delete_single",
        (_rule(r"^(?:delete|remove|cancel|erase|drop)\s+(.+)$", _build_delete_single),),
    ),
    (
        "update_all_status",
        (
            _rule(rf"^(?:mark|set|change|move|make)\s+(?:all|everything)(?:\s+(?:of\s+)?(?:the\s+|my\s+)?(.+?))??"
                  rf"(?:\s+tasks?)?\s+(?:as\s+|to\s+)?{_STATUS}$", _build_update_all_status),
            _rule(r"^(?:complete|finish)\s+(?:all|everything)(?:\s+(?:of\s+)?(?:the\s+|my\s+)?(.+?))??(?:\s+tasks?)?$",
                  _status_for_all(TaskStatus.COMPLETED)),
        ),
    ),
    (
        "update_status",
        (
            _rule(rf"^(?:mark|set|change|move|put)\s+(.+?)\s+(?:as|to|into)\s+{_STATUS}$", _build_update_status),
            _rule(rf"^(?:mark|set)\s+(.+?)\s+{_STATUS}$", _build_update_status),
            _rule(r"^(?:complete|finish)\s+(.+)$", _status_for_single(TaskStatus.COMPLETED)),
            _rule(r"^(?:start|begin)\s+(?:working\s+on\s+|on\s+)?(.+)$", _status_for_single(TaskStatus.IN_PROGRESS)),
            _rule(r"^i\s+(?:have\s+|just\s+)?(?:finished|completed|did)\s+(.+)$",
                  _status_for_single(TaskStatus.COMPLETED)),
            _rule(rf"^{_NOT_READ}(.+?)\s+(?:is|are)\s+(?:now\s+)?{_STATUS}$", _build_update_status),
            _rule(rf"^{_NOT_READ}(.+?)\s+(done|completed|finished|complete)$", _build_update_status),
        ),
    ),
    (
        "update_priority",
        (
            _rule(rf"^(?:set|mark|change|make|move)\s+(?:all|everything)(?:\s+(?:of\s+)?(?:the\s+|my\s+)?(.+?))??"
                  rf"(?:\s+tasks?)?\s+(?:as|to)\s+(?:a\s+)?{_PRIORITY}(?:\s+priority)?$", _build_update_all_priority),
            _rule(rf"^(?:set|mark|change|make|move|put)\s+(?:the\s+)?(?:priority\s+(?:of|for|on)\s+)?(.+?)"
                  rf"\s+(?:as|to|at)\s+(?:a\s+)?{_PRIORITY}(?:\s+priority)?(?:\s+(.+))?$", _build_update_priority),
            _rule(rf"^(?:make|mark)\s+(.+?)\s+{_PRIORITY}(?:\s+priority)?$", _build_update_priority),
            _rule(rf"^{_NOT_READ}(.+?)\s+(?:is|are)\s+(?:very\s+|really\s+|a\s+)?{_PRIORITY}(?:\s+priority)?$",
                  _build_update_priority),
            _rule(r"^(?:prioritize|prioritise)\s+(.+)$", _build_prioritize),
        ),
    ),
    (
        "update_due_date",
        (
            _rule(r"^(?:set|change|move|reschedule|push|postpone)\s+(?:the\s+)?(?:due\s+date\s+(?:of|for|on)\s+)?(.+?)"
                  r"\s+(?:to|for|until|till|on)\s+(.+)$", _build_update_due_date),
            _rule(r"^(?:set|change|move|reschedule|push|postpone)\s+(.+?)\s+"
                  r"(today|tomorrow|yesterday|day\s+after\s+tomorrow|next\s+week|next\s+month)$",
                  _build_update_due_date),
            _rule(rf"^{_NOT_READ}(.+?)\s+(?:is\s+)?(?:due|for|by)\s+(.+)$",
                  _build_update_due_date),
        ),
    ),
    (
        "read",
        (_rule(r"^(?:show|list|read|display|tell\s+me|give\s+me|what|which|how\s+many)\b(.*)$", _build_read),),
    ),
)  # fmt: skip


# ============================================================================
# Parsing
# ============================================================================


def split_clauses(text: str) -> list[str]:
    """Lower-case, trim and split a transcript on the word "and"."""
    return _CLAUSE_SPLIT.split(text.lower().strip())


def _normalize_clause(clause: str) -> str:
    clause = clause.strip(" \t,.;:!?")
    previous = None
    while previous != clause:
        previous = clause
        clause = _LEADING_FILLER.sub("", clause)
        clause = _TRAILING_FILLER.sub("", clause).strip(" \t,.;:!?")
    return " ".join(clause.split())


def parse_clause(clause: str, context: TaskContext) -> Command | None:
    """Run one clause through the tier cascade; None when no tier matches."""
    clause = _normalize_clause(clause)
    if not clause:
        return None
    for tier, rules in RULE_TIERS:
        for rule in rules:
            match = rule.pattern.match(clause)
            if not match:
                continue
            command = rule.build(match, clause, context)
            if command is not None:
                logger.debug("Clause %r matched tier %s", clause, tier)
                return command
    return None


_INFER_DELETE = re.compile(r"\b(?:delete|remove|erase)\b")
_INFER_UPDATE = re.compile(r"\b(?:mark|set|change)\b")
_INFER_CREATE = re.compile(r"\b(?:add|create|new|remind)\b")


def infer_command(text: str, context: TaskContext) -> Command:
    """Last-resort keyword inference for text no tier recognised."""
    text = text.lower().strip()

    if _INFER_DELETE.search(text):
        fragment = " ".join(re.sub(r"\b(?:delete|remove|erase|task|and)\b", " ", text).split())
        resolution = resolve_task_reference(fragment, context.tasks)
        return Command(
            action=Action.DELETE,
            target=Target.SINGLE,
            task_id=resolution.task.id if resolution else None,
            task_title=resolution.task.title if resolution else fragment or None,
            confidence=0.4,
        )

    if _INFER_UPDATE.search(text):
        parts = _INFER_UPDATE.split(text, maxsplit=1)
        tail = " ".join(re.sub(r"\band\b", " ", parts[1]).split()) if len(parts) > 1 else ""
        fragment = tail or text
        resolution = resolve_task_reference(fragment, context.tasks)
        return Command(
            action=Action.UPDATE,
            target=Target.SINGLE,
            task_id=resolution.task.id if resolution else None,
            task_title=resolution.task.title if resolution else fragment or None,
            confidence=0.3,
        )

    if _INFER_CREATE.search(text):
        title = re.sub(r"\b(?:add|create|new|remind\s+me\s+to|remind|task|and)\b", " ", text)
        return Command(
            action=Action.CREATE,
            target=Target.SINGLE,
            task_title=clean_task_title(title) or " ".join(title.split()),
            confidence=0.4,
        )

    return Command(action=Action.UNKNOWN, target=Target.SINGLE, confidence=0.0)


def parse_with_rules(transcript: str, context: TaskContext | None = None) -> ParsedResult:
    """
    Parse a transcript with the rule cascade. Never raises.

    Args:
        transcript: Raw speech-to-text output
        context: Task snapshot and reference time

    Returns:
        ParsedResult with at least one command (UNKNOWN at confidence 0.0 when
        nothing could be inferred)
    """
    context = context or TaskContext()
    transcript = transcript or ""

    commands = [command for clause in split_clauses(transcript) if (command := parse_clause(clause, context))]
    if not commands:
        commands = [infer_command(transcript, context)]
        logger.info("No rule matched %r, inferred %s", transcript, commands[0].action.value)

    return ParsedResult(
        commands=commands,
        raw_transcript=transcript,
        interpretation=build_interpretation(commands),
        parser_used=ParserUsed.FALLBACK,
    )
