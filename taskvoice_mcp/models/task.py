"""Task snapshot models used as parsing context."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskvoice_mcp.enums import Priority, TaskStatus

_STATUS_SPELLINGS = {
    "pending": TaskStatus.PENDING,
    "todo": TaskStatus.PENDING,
    "in_progress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
    "inprogress": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "complete": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
}

_PRIORITY_SPELLINGS = {
    "high": Priority.HIGH,
    "h": Priority.HIGH,
    "medium": Priority.MEDIUM,
    "m": Priority.MEDIUM,
    "low": Priority.LOW,
    "l": Priority.LOW,
}


def coerce_status(value: Any) -> Any:
    """Fold the status spellings seen in stores and LLM output into TaskStatus."""
    if isinstance(value, str):
        return _STATUS_SPELLINGS.get(value.strip().lower(), value)
    return value


def coerce_priority(value: Any) -> Any:
    """Fold case and Taskwarrior H/M/L codes into Priority."""
    if isinstance(value, str):
        return _PRIORITY_SPELLINGS.get(value.strip().lower(), value)
    return value


class TaskModel(BaseModel):
    """A task as seen by the interpreter. Read-only context, never mutated here."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    title: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    due_date: str | None = Field(default=None, alias="dueDate")

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return coerce_status(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        if v is None:
            return Priority.MEDIUM
        return coerce_priority(v)


class TaskContext(BaseModel):
    """Everything a parse call may look at besides the transcript.

    Supplied fresh per call so that parsing never depends on shared state.
    ``now`` anchors all relative date arithmetic.
    """

    tasks: list[TaskModel] = Field(default_factory=list)
    now: datetime = Field(default_factory=datetime.now)
