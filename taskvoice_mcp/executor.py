"""Command executor: applies parsed commands to a task store."""

import logging
from typing import Any, Protocol

from taskvoice_mcp.enums import Action, Priority, Target, TaskStatus
from taskvoice_mcp.exceptions import StoreError, TaskNotFoundError, TaskVoiceError
from taskvoice_mcp.models.command import Command, CommandFilters, CommandOutcome, ExecutionReport, ParsedResult
from taskvoice_mcp.models.task import TaskModel
from taskvoice_mcp.utils.formatters import STATUS_LABELS, describe_command, summarize_tasks
from taskvoice_mcp.utils.resolver import find_task_by_id, resolve_task_reference

logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    """Persistence collaborator the executor drives. Field keys are snake_case."""

    async def list_tasks(self) -> list[TaskModel]: ...

    async def create_task(self, fields: dict[str, Any]) -> TaskModel: ...

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> TaskModel: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def mark_complete(self, task_id: str) -> TaskModel: ...

    async def delete_all_tasks(self) -> int: ...


def matches_filters(task: TaskModel, filters: CommandFilters) -> bool:
    """True when the task satisfies every filter that is set."""
    if filters.status and task.status != filters.status:
        return False
    if filters.priority and task.priority != filters.priority:
        return False
    return True


def _update_fields(command: Command) -> dict[str, Any]:
    return command.updates.model_dump(exclude_none=True)


def _describe_change(fields: dict[str, Any]) -> str:
    parts = []
    if "status" in fields:
        parts.append(f"status {STATUS_LABELS[TaskStatus(fields['status'])]}")
    if "priority" in fields:
        parts.append(f"priority {Priority(fields['priority']).value.lower()}")
    if "due_date" in fields:
        parts.append(f"due {fields['due_date'][:10]}")
    return ", ".join(parts)


def _plural(count: int) -> str:
    return "task" if count == 1 else "tasks"


class CommandExecutor:
    """
    Runs every command of a parsed result in order.

    The task list is re-read before each command so later commands see the
    effects of earlier ones. One failing command never stops the batch.
    """

    def __init__(self, store: TaskStore, min_confidence: float = 0.5):
        self.store = store
        self.min_confidence = min_confidence

    async def execute(self, result: ParsedResult) -> ExecutionReport:
        """Execute all commands and collect one outcome per command."""
        outcomes = []
        for command in result.commands:
            outcome = await self.execute_command(command, result.raw_transcript)
            if outcome.skipped:
                logger.info("Skipped %s (confidence %.2f)", command.action.value, command.confidence)
            elif outcome.success:
                logger.info("Executed %s: %s", command.action.value, outcome.message)
            else:
                logger.error("Failed %s: %s", command.action.value, outcome.error or outcome.message)
            outcomes.append(outcome)
        return ExecutionReport(outcomes=outcomes)

    async def execute_command(self, command: Command, raw_transcript: str = "") -> CommandOutcome:
        """Execute one command, converting every error into a failed outcome."""
        if command.action == Action.UNKNOWN:
            return CommandOutcome(command=command, message="Command not understood", error="Command not understood")

        if command.confidence < self.min_confidence:
            return CommandOutcome(
                command=command,
                skipped=True,
                message=f"Low confidence, not executed: {describe_command(command)}",
            )

        try:
            return await self._dispatch(command, raw_transcript)
        except TaskVoiceError as e:
            return CommandOutcome(command=command, message=e.message, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error executing %s", command.action.value)
            return CommandOutcome(command=command, message="Command failed", error=str(e))

    async def _dispatch(self, command: Command, raw_transcript: str) -> CommandOutcome:
        if command.action == Action.CREATE:
            return await self._create(command, raw_transcript)

        tasks = await self.store.list_tasks()
        if command.action == Action.READ:
            return self._read(command, tasks)
        if command.action == Action.UPDATE:
            return await self._update(command, tasks)
        if command.action == Action.DELETE:
            return await self._delete(command, tasks)
        if command.action == Action.DELETE_ALL:
            return await self._delete_all(command, tasks)
        return await self._update_all(command, tasks)

    # ------------------------------------------------------------------
    # Single-task commands
    # ------------------------------------------------------------------

    def _resolve(self, command: Command, tasks: list[TaskModel]) -> TaskModel:
        task = find_task_by_id(command.task_id, tasks)
        if task is None:
            resolution = resolve_task_reference(command.task_title, tasks)
            task = resolution.task if resolution else None
        if task is None:
            raise TaskNotFoundError(command.task_title or command.task_id)
        return task

    async def _create(self, command: Command, raw_transcript: str) -> CommandOutcome:
        fields: dict[str, Any] = {
            "title": (command.task_title or "").strip() or raw_transcript.strip(),
            "status": command.updates.status or TaskStatus.PENDING,
            "priority": command.updates.priority or Priority.MEDIUM,
        }
        if command.updates.due_date:
            fields["due_date"] = command.updates.due_date
        task = await self.store.create_task(fields)
        return CommandOutcome(
            command=command,
            success=True,
            message=f'Created task "{task.title}".',
            affected_ids=[task.id],
        )

    async def _update(self, command: Command, tasks: list[TaskModel]) -> CommandOutcome:
        task = self._resolve(command, tasks)
        fields = _update_fields(command)
        if not fields:
            return CommandOutcome(command=command, message=f'Nothing to change on "{task.title}".', error="No updates")

        if fields == {"status": TaskStatus.COMPLETED}:
            await self.store.mark_complete(task.id)
            return CommandOutcome(
                command=command,
                success=True,
                message=f'Marked "{task.title}" as completed.',
                affected_ids=[task.id],
            )

        await self.store.update_task(task.id, fields)
        return CommandOutcome(
            command=command,
            success=True,
            message=f'Updated "{task.title}": {_describe_change(fields)}.',
            affected_ids=[task.id],
        )

    async def _delete(self, command: Command, tasks: list[TaskModel]) -> CommandOutcome:
        task = self._resolve(command, tasks)
        await self.store.delete_task(task.id)
        return CommandOutcome(command=command, success=True, message=f'Deleted "{task.title}".', affected_ids=[task.id])

    # ------------------------------------------------------------------
    # Bulk and read commands
    # ------------------------------------------------------------------

    def _read(self, command: Command, tasks: list[TaskModel]) -> CommandOutcome:
        subset = [t for t in tasks if matches_filters(t, command.filters)]
        return CommandOutcome(
            command=command,
            success=True,
            message=summarize_tasks(subset),
            affected_ids=[t.id for t in subset],
        )

    def _no_match(self, command: Command) -> CommandOutcome:
        return CommandOutcome(command=command, message="No tasks match.", error="No tasks match")

    def _unscoped(self, command: Command) -> CommandOutcome:
        return CommandOutcome(
            command=command,
            message="Filtered command has no filters, nothing changed.",
            error="Missing filters",
        )

    async def _delete_all(self, command: Command, tasks: list[TaskModel]) -> CommandOutcome:
        if command.target == Target.FILTERED and command.filters.is_empty:
            return self._unscoped(command)
        subset = [t for t in tasks if matches_filters(t, command.filters)]
        if not subset:
            return self._no_match(command)

        if command.target == Target.ALL and command.filters.is_empty:
            try:
                count = await self.store.delete_all_tasks()
                return CommandOutcome(
                    command=command,
                    success=True,
                    message=f"Deleted all {count} {_plural(count)}.",
                    affected_ids=[t.id for t in subset],
                )
            except StoreError as e:
                logger.warning("Bulk delete failed, deleting one by one: %s", e)

        deleted, errors = [], []
        for task in subset:
            try:
                await self.store.delete_task(task.id)
                deleted.append(task.id)
            except StoreError as e:
                errors.append(str(e))

        return self._bulk_outcome(command, "Deleted", deleted, len(subset), errors)

    async def _update_all(self, command: Command, tasks: list[TaskModel]) -> CommandOutcome:
        if command.target == Target.FILTERED and command.filters.is_empty:
            return self._unscoped(command)
        subset = [t for t in tasks if matches_filters(t, command.filters)]
        if not subset:
            return self._no_match(command)

        fields = _update_fields(command)
        if not fields:
            return CommandOutcome(command=command, message="Nothing to change.", error="No updates")

        updated, errors = [], []
        for task in subset:
            try:
                if fields == {"status": TaskStatus.COMPLETED}:
                    await self.store.mark_complete(task.id)
                else:
                    await self.store.update_task(task.id, fields)
                updated.append(task.id)
            except StoreError as e:
                errors.append(str(e))

        return self._bulk_outcome(command, "Updated", updated, len(subset), errors)

    def _bulk_outcome(
        self, command: Command, verb: str, done: list[str], total: int, errors: list[str]
    ) -> CommandOutcome:
        if not done:
            return CommandOutcome(command=command, message=f"{verb} no tasks.", error="; ".join(errors))
        if errors:
            return CommandOutcome(
                command=command,
                success=True,
                message=f"{verb} {len(done)} of {total} tasks.",
                error=f"{len(errors)} failed: " + "; ".join(errors),
                affected_ids=done,
            )
        return CommandOutcome(
            command=command,
            success=True,
            message=f"{verb} {len(done)} {_plural(len(done))}.",
            affected_ids=done,
        )
