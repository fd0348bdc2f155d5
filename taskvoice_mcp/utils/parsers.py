"""Parser helpers turning raw task records into TaskModel snapshots."""

from datetime import datetime
from typing import Any

from taskvoice_mcp.enums import Priority, TaskStatus
from taskvoice_mcp.models.task import TaskModel

_TW_PRIORITY = {"H": Priority.HIGH, "M": Priority.MEDIUM, "L": Priority.LOW}
_TW_DATE_FORMAT = "%Y%m%dT%H%M%SZ"


def _parse_task(task_dict: dict[str, Any]) -> TaskModel:
    """
    Parse a generic task dictionary into a TaskModel.

    Accepts camelCase (``dueDate``) or snake_case (``due_date``) keys and
    ``_id`` as an id fallback for document-store records.
    """
    data = dict(task_dict)
    document_id = data.pop("_id", None)
    if "id" not in data and document_id is not None:
        data["id"] = document_id
    return TaskModel.model_validate(data)


def _parse_taskwarrior_date(value: str | None) -> str | None:
    """Convert Taskwarrior's compact UTC timestamp into ISO-8601."""
    if not value:
        return None
    try:
        return datetime.strptime(value, _TW_DATE_FORMAT).isoformat() + "Z"
    except ValueError:
        return value


def _parse_taskwarrior_task(task_dict: dict[str, Any]) -> TaskModel:
    """
    Parse one record of ``task export`` into a TaskModel.

    The UUID becomes the id because Taskwarrior's numeric ids shift whenever
    tasks complete. A running timer (``start``) is reported as in progress.
    """
    if task_dict.get("status") == "completed":
        status = TaskStatus.COMPLETED
    elif task_dict.get("start"):
        status = TaskStatus.IN_PROGRESS
    else:
        status = TaskStatus.PENDING

    return TaskModel(
        id=str(task_dict.get("uuid") or task_dict.get("id")),
        title=task_dict.get("description", ""),
        status=status,
        priority=_TW_PRIORITY.get(task_dict.get("priority") or "", Priority.MEDIUM),
        due_date=_parse_taskwarrior_date(task_dict.get("due")),
    )


def _parse_taskwarrior_tasks(tasks: list[dict[str, Any]]) -> list[TaskModel]:
    """Parse Taskwarrior export records, keeping the CLI's id order."""
    ordered = sorted(tasks, key=lambda t: (t.get("id") in (None, 0), t.get("id") or 0, t.get("entry", "")))
    return [_parse_taskwarrior_task(t) for t in ordered]
