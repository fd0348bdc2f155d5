"""Formatting utilities: interpretations, spoken summaries and tool output."""

import json
from datetime import datetime

from taskvoice_mcp.enums import Action, TaskStatus
from taskvoice_mcp.models.command import Command, CommandFilters, CommandUpdates, ExecutionReport, ParsedResult
from taskvoice_mcp.models.status import BackendStatus
from taskvoice_mcp.models.task import TaskModel

STATUS_LABELS = {
    TaskStatus.PENDING: "pending",
    TaskStatus.IN_PROGRESS: "in progress",
    TaskStatus.COMPLETED: "completed",
}


def _describe_filters(filters: CommandFilters) -> str:
    parts = []
    if filters.status:
        parts.append(STATUS_LABELS[filters.status])
    if filters.priority:
        parts.append(f"{filters.priority.value.lower()} priority")
    return " ".join(parts)


def _describe_date(value: str) -> str:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.hour or parsed.minute:
        return parsed.strftime("%a %b %d %Y %H:%M")
    return parsed.strftime("%a %b %d %Y")


def _describe_updates(updates: CommandUpdates) -> str:
    parts = []
    if updates.status:
        parts.append(f"status {STATUS_LABELS[updates.status]}")
    if updates.priority:
        parts.append(f"priority {updates.priority.value.lower()}")
    if updates.due_date:
        parts.append(f"due {_describe_date(updates.due_date)}")
    return ", ".join(parts) or "no changes"


def describe_command(command: Command) -> str:
    """One-line human-readable description of a command."""
    title = command.task_title or (f"task {command.task_id}" if command.task_id else "unknown task")
    filters = _describe_filters(command.filters)

    if command.action == Action.CREATE:
        extra = "" if command.updates.is_empty else f" ({_describe_updates(command.updates)})"
        return f"Create task: {title}{extra}"
    if command.action == Action.DELETE:
        return f"Delete task: {title}"
    if command.action == Action.DELETE_ALL:
        return f"Delete all {filters} tasks" if filters else "Delete all tasks"
    if command.action == Action.UPDATE:
        return f"Update {title}: {_describe_updates(command.updates)}"
    if command.action == Action.UPDATE_ALL:
        scope = f"all {filters} tasks" if filters else "all tasks"
        return f"Update {scope}: {_describe_updates(command.updates)}"
    if command.action == Action.READ:
        return f"Show {filters} tasks" if filters else "Show all tasks"
    return "Unknown command"


def build_interpretation(commands: list[Command]) -> str:
    """Join command descriptions with ", then "."""
    if not commands:
        return "No commands detected"
    return ", then ".join(describe_command(c) for c in commands)


def summarize_tasks(tasks: list[TaskModel]) -> str:
    """
    Spoken summary of a task list grouped by status.

    Output: "You have 3 tasks. 2 pending: Buy milk, Call mom. 1 completed."
    """
    if not tasks:
        return "You have no tasks."

    pending = [t for t in tasks if t.status == TaskStatus.PENDING]
    in_progress = [t for t in tasks if t.status == TaskStatus.IN_PROGRESS]
    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]

    noun = "task" if len(tasks) == 1 else "tasks"
    sentences = [f"You have {len(tasks)} {noun}."]

    for group, label, shown in ((pending, "pending", 5), (in_progress, "in progress", 3)):
        if not group:
            continue
        titles = ", ".join(t.title for t in group[:shown])
        if len(group) > shown:
            titles += f" and {len(group) - shown} more"
        sentences.append(f"{len(group)} {label}: {titles}.")

    if completed:
        sentences.append(f"{len(completed)} completed.")

    return " ".join(sentences)


def _format_command_markdown(index: int, command: Command) -> str:
    lines = [f"{index}. **{command.action.value}** ({command.target.value}): {describe_command(command)}"]
    details = [f"confidence {command.confidence:.2f}"]
    if command.task_id:
        details.append(f"task id `{command.task_id}`")
    if command.is_low_confidence:
        details.append("low confidence, will not auto-execute")
    lines.append(f"   - {' | '.join(details)}")
    return "\n".join(lines)


def format_parsed_result_markdown(result: ParsedResult) -> str:
    """Format a parsed result as markdown."""
    lines = ["# Voice Command", f'*Transcript:* "{result.raw_transcript}"', ""]
    lines.append(f"**Interpretation**: {result.interpretation}")
    parser = f"**Parser**: {result.parser_used.value}"
    if result.fallback_reason:
        parser += f" (LLM unavailable: {result.fallback_reason.value})"
    lines.append(parser)
    lines.append("")

    if not result.commands:
        lines.append("No commands.")
        return "\n".join(lines)

    lines.append(f"## Commands ({len(result.commands)})")
    for i, command in enumerate(result.commands, 1):
        lines.append(_format_command_markdown(i, command))
    return "\n".join(lines)


def format_parsed_result_json(result: ParsedResult) -> str:
    """Format a parsed result as camelCase JSON."""
    return json.dumps(result.model_dump(mode="json", by_alias=True), indent=2)


def format_execution_markdown(result: ParsedResult, report: ExecutionReport) -> str:
    """Format a parse-and-execute run as markdown."""
    lines = [format_parsed_result_markdown(result), "", "## Results"]
    if not report.outcomes:
        lines.append("Nothing was executed.")
    for i, outcome in enumerate(report.outcomes, 1):
        if outcome.skipped:
            mark = "SKIPPED"
        elif outcome.success:
            mark = "OK"
        else:
            mark = "FAILED"
        line = f"{i}. [{mark}] {outcome.message}"
        if outcome.error and outcome.error not in outcome.message:
            line += f" ({outcome.error})"
        lines.append(line)
    lines.append("")
    lines.append(f"*{report.succeeded} succeeded, {report.failed} failed, {report.skipped} skipped*")
    if report.feedback:
        lines.append(f"**Feedback**: {report.feedback}")
    return "\n".join(lines)


def format_execution_json(result: ParsedResult, report: ExecutionReport) -> str:
    """Format a parse-and-execute run as JSON."""
    return json.dumps(
        {
            "parsed": result.model_dump(mode="json", by_alias=True),
            "succeeded": report.succeeded,
            "failed": report.failed,
            "skipped": report.skipped,
            "feedback": report.feedback,
            "outcomes": [o.model_dump(mode="json", by_alias=True) for o in report.outcomes],
        },
        indent=2,
    )


def _backend_state(status: BackendStatus) -> str:
    if not status.configured:
        return "not configured"
    if status.reachable is None:
        return "configured"
    if not status.reachable:
        return "unreachable"
    if status.model_available is False:
        return "reachable, model missing"
    return "available"


def format_backend_status_markdown(statuses: list[BackendStatus]) -> str:
    """Format backend availability as markdown, in fallback order."""
    lines = ["# LLM Backends", ""]
    for i, status in enumerate(statuses, 1):
        line = f"{i}. **{status.name}** ({status.model}): {_backend_state(status)}"
        if status.detail:
            line += f"\n   - {status.detail}"
        lines.append(line)
    if not any(s.configured and s.reachable is not False for s in statuses):
        lines.append("")
        lines.append("*No LLM backend available; commands will be parsed by the rule-based parser.*")
    return "\n".join(lines)
