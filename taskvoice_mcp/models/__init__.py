"""Pydantic models for the voice-command interpreter."""

from taskvoice_mcp.models.command import (
    UNRESOLVED_CONFIDENCE_CEILING,
    Command,
    CommandFilters,
    CommandOutcome,
    CommandUpdates,
    EngineErr,
    EngineOk,
    EngineResult,
    ExecutionReport,
    ParsedResult,
)
from taskvoice_mcp.models.inputs import BackendStatusInput, ExecuteCommandInput, ParseCommandInput
from taskvoice_mcp.models.status import BackendStatus
from taskvoice_mcp.models.task import TaskContext, TaskModel

__all__ = [
    # Context models
    "TaskModel",
    "TaskContext",
    # Command models
    "Command",
    "CommandFilters",
    "CommandUpdates",
    "ParsedResult",
    "UNRESOLVED_CONFIDENCE_CEILING",
    # Engine results
    "EngineOk",
    "EngineErr",
    "EngineResult",
    # Execution models
    "CommandOutcome",
    "ExecutionReport",
    # Backend status
    "BackendStatus",
    # Tool input models
    "ParseCommandInput",
    "ExecuteCommandInput",
    "BackendStatusInput",
]
