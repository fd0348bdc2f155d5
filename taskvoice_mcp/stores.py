"""Task stores the executor can drive: in-memory and Taskwarrior-backed."""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from taskvoice_mcp.enums import Priority, TaskStatus
from taskvoice_mcp.exceptions import StoreError
from taskvoice_mcp.models.task import TaskModel
from taskvoice_mcp.utils.cli import _export_tasks, _run_task_command
from taskvoice_mcp.utils.parsers import _parse_task, _parse_taskwarrior_task, _parse_taskwarrior_tasks

logger = logging.getLogger(__name__)


# ============================================================================
# In-memory store
# ============================================================================


class InMemoryTaskStore:
    """Insertion-ordered store with generated ``task-<n>`` ids."""

    def __init__(self, tasks: Iterable[TaskModel | dict[str, Any]] | None = None):
        self._tasks: dict[str, TaskModel] = {}
        self._counter = 0
        for task in tasks or []:
            model = task if isinstance(task, TaskModel) else _parse_task(task)
            self._tasks[model.id] = model

    def _next_id(self) -> str:
        self._counter += 1
        while f"task-{self._counter}" in self._tasks:
            self._counter += 1
        return f"task-{self._counter}"

    def _get(self, task_id: str) -> TaskModel:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise StoreError(f"Task {task_id} not found", {"task_id": task_id}) from None

    async def list_tasks(self) -> list[TaskModel]:
        return list(self._tasks.values())

    async def create_task(self, fields: dict[str, Any]) -> TaskModel:
        if not str(fields.get("title") or "").strip():
            raise StoreError("A task needs a title")
        task = TaskModel.model_validate({**fields, "id": self._next_id()})
        self._tasks[task.id] = task
        return task

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> TaskModel:
        current = self._get(task_id)
        task = TaskModel.model_validate({**current.model_dump(), **fields, "id": task_id})
        self._tasks[task_id] = task
        return task

    async def delete_task(self, task_id: str) -> None:
        self._get(task_id)
        del self._tasks[task_id]

    async def mark_complete(self, task_id: str) -> TaskModel:
        return await self.update_task(task_id, {"status": TaskStatus.COMPLETED})

    async def delete_all_tasks(self) -> int:
        count = len(self._tasks)
        self._tasks.clear()
        return count


# ============================================================================
# Taskwarrior store
# ============================================================================

_TW_PRIORITY_CODES = {Priority.HIGH: "H", Priority.MEDIUM: "M", Priority.LOW: "L"}

# Everything a user still sees: pending, started, waiting and completed tasks.
_VISIBLE = ["status.not:deleted", "status.not:recurring"]


def _modifications(fields: dict[str, Any]) -> list[str]:
    """Translate priority and due-date fields into ``task modify`` arguments."""
    args = []
    if fields.get("priority"):
        args.append(f"priority:{_TW_PRIORITY_CODES[Priority(fields['priority'])]}")
    if fields.get("due_date"):
        args.append(f"due:{str(fields['due_date']).rstrip('Z')}")
    return args


class TaskwarriorStore:
    """
    Task store backed by the ``task`` CLI.

    Blocking subprocess calls run in a worker thread. Tasks are addressed by
    UUID; a started task is reported as in progress.
    """

    async def _run(self, args: list[str]) -> str:
        success, output = await asyncio.to_thread(_run_task_command, args)
        if not success:
            raise StoreError(output, {"args": args})
        return output

    async def _export(self, filter_args: list[str]) -> list[dict[str, Any]]:
        success, result = await asyncio.to_thread(_export_tasks, filter_args)
        if not success:
            raise StoreError(str(result), {"filter": filter_args})
        return result  # type: ignore[return-value]

    async def _get(self, task_id: str) -> TaskModel:
        records = await self._export([task_id])
        if not records:
            raise StoreError(f"Task {task_id} not found", {"task_id": task_id})
        return _parse_taskwarrior_task(records[0])

    async def _apply_status(self, task: TaskModel, status: TaskStatus) -> None:
        if status == task.status:
            return
        if status == TaskStatus.COMPLETED:
            await self._run([task.id, "done"])
        elif status == TaskStatus.IN_PROGRESS:
            if task.status == TaskStatus.COMPLETED:
                await self._run([task.id, "modify", "status:pending"])
            await self._run([task.id, "start"])
        elif task.status == TaskStatus.COMPLETED:
            await self._run([task.id, "modify", "status:pending"])
        else:
            await self._run([task.id, "stop"])

    async def list_tasks(self) -> list[TaskModel]:
        return _parse_taskwarrior_tasks(await self._export(_VISIBLE))

    async def create_task(self, fields: dict[str, Any]) -> TaskModel:
        title = str(fields.get("title") or "").strip()
        if not title:
            raise StoreError("A task needs a title")

        # "--" keeps words like "due:" in the title from being parsed as attributes.
        await self._run(["add", *_modifications(fields), "--", title])
        records = await self._export(["+LATEST"])
        if not records:
            raise StoreError("Task was added but could not be read back")
        task = _parse_taskwarrior_task(records[0])

        status = fields.get("status")
        if status and TaskStatus(status) != TaskStatus.PENDING:
            await self._apply_status(task, TaskStatus(status))
            task = await self._get(task.id)
        return task

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> TaskModel:
        task = await self._get(task_id)
        modifications = _modifications(fields)
        if modifications:
            await self._run([task_id, "modify", *modifications])
        if fields.get("status"):
            await self._apply_status(task, TaskStatus(fields["status"]))
        return await self._get(task_id)

    async def delete_task(self, task_id: str) -> None:
        await self._run([task_id, "delete"])

    async def mark_complete(self, task_id: str) -> TaskModel:
        await self._run([task_id, "done"])
        return await self._get(task_id)

    async def delete_all_tasks(self) -> int:
        records = await self._export(_VISIBLE)
        if not records:
            return 0
        await self._run([*_VISIBLE, "delete"])
        logger.info("Deleted %d Taskwarrior tasks", len(records))
        return len(records)
