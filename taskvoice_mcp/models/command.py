"""Command, parse-result and execution-report models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from taskvoice_mcp.enums import Action, FallbackReason, ParserUsed, Priority, Target, TaskStatus
from taskvoice_mcp.models.task import coerce_priority, coerce_status

# Confidence ceiling for a single-task command whose reference did not resolve.
UNRESOLVED_CONFIDENCE_CEILING = 0.6


class CommandFilters(BaseModel):
    """Narrows which tasks a bulk or read command applies to."""

    status: TaskStatus | None = None
    priority: Priority | None = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return coerce_status(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        return coerce_priority(v)

    @property
    def is_empty(self) -> bool:
        return self.status is None and self.priority is None


class CommandUpdates(BaseModel):
    """New field values a command applies."""

    model_config = ConfigDict(populate_by_name=True)

    status: TaskStatus | None = None
    priority: Priority | None = None
    due_date: str | None = Field(default=None, alias="dueDate")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return coerce_status(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        return coerce_priority(v)

    @property
    def is_empty(self) -> bool:
        return self.status is None and self.priority is None and self.due_date is None


class Command(BaseModel):
    """One structured, executable instruction derived from (part of) a transcript."""

    model_config = ConfigDict(populate_by_name=True)

    action: Action
    target: Target = Target.SINGLE
    task_id: str | None = Field(default=None, alias="taskId")
    task_title: str | None = Field(default=None, alias="taskTitle")
    filters: CommandFilters = Field(default_factory=CommandFilters)
    updates: CommandUpdates = Field(default_factory=CommandUpdates)
    confidence: float = 0.0

    @field_validator("action", mode="before")
    @classmethod
    def validate_action(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("target", mode="before")
    @classmethod
    def validate_target(cls, v: Any) -> Any:
        if v is None:
            return Target.SINGLE
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("task_id", mode="before")
    @classmethod
    def validate_task_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("filters", "updates", mode="before")
    @classmethod
    def validate_nested(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> Any:
        if v is None:
            return 0.0
        try:
            return min(1.0, max(0.0, float(v)))
        except (TypeError, ValueError):
            return v

    @model_validator(mode="after")
    def check_filtered_scope(self) -> Command:
        if self.target == Target.FILTERED and self.filters.is_empty:
            raise ValueError("A filtered command needs a status or priority filter")
        return self

    @property
    def references_task(self) -> bool:
        """True when the command needs an existing task resolved to act on."""
        return self.action in (Action.UPDATE, Action.DELETE) and self.target == Target.SINGLE

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < 0.5


class ParsedResult(BaseModel):
    """Output of one parse call."""

    model_config = ConfigDict(populate_by_name=True)

    commands: list[Command] = Field(default_factory=list)
    raw_transcript: str = Field(default="", alias="rawTranscript")
    interpretation: str = ""
    parser_used: ParserUsed = Field(default=ParserUsed.FALLBACK, alias="parserUsed")
    fallback_reason: FallbackReason | None = Field(default=None, alias="fallbackReason")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence(self) -> float:
        """Lowest command confidence; 0.0 when there are no commands."""
        if not self.commands:
            return 0.0
        return min(c.confidence for c in self.commands)


class EngineOk(BaseModel):
    """Successful engine output."""

    result: ParsedResult

    @property
    def ok(self) -> bool:
        return True


class EngineErr(BaseModel):
    """Failed engine attempt, with the reason kept for the caller."""

    reason: FallbackReason
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


EngineResult = EngineOk | EngineErr


class CommandOutcome(BaseModel):
    """What happened when one command was executed."""

    command: Command
    success: bool = False
    skipped: bool = False
    message: str = ""
    error: str | None = None
    affected_ids: list[str] = Field(default_factory=list)


class ExecutionReport(BaseModel):
    """Aggregate outcome of executing a parsed result."""

    outcomes: list[CommandOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success and not o.skipped)

    @property
    def all_succeeded(self) -> bool:
        return bool(self.outcomes) and all(o.success for o in self.outcomes)

    @property
    def feedback(self) -> str:
        """One sentence per outcome, for spoken or visual playback."""
        return " ".join(o.message for o in self.outcomes if o.message)
