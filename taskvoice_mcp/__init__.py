"""
MCP Server for voice-controlled task management.

This server turns free-form speech transcripts into structured task commands
(create, update, delete, bulk update, bulk delete, read), using a generative
language model when one answers and a deterministic rule-based parser when it
does not, and can execute those commands against a task store.
"""

# Re-export enums
from taskvoice_mcp.enums import Action, FallbackReason, ParserUsed, Priority, ResponseFormat, Target, TaskStatus

# Re-export configuration and errors
from taskvoice_mcp.config import Settings, load_env_file
from taskvoice_mcp.exceptions import BackendError, LLMResponseError, StoreError, TaskNotFoundError, TaskVoiceError

# Re-export models
from taskvoice_mcp.models import (
    BackendStatus,
    BackendStatusInput,
    Command,
    CommandFilters,
    CommandOutcome,
    CommandUpdates,
    EngineErr,
    EngineOk,
    ExecuteCommandInput,
    ExecutionReport,
    ParseCommandInput,
    ParsedResult,
    TaskContext,
    TaskModel,
)

# Re-export engines, service and executor
from taskvoice_mcp.engines import LLMCommandParser, build_backends, check_backend_status, parse_with_rules
from taskvoice_mcp.executor import CommandExecutor, TaskStore
from taskvoice_mcp.service import CommandService
from taskvoice_mcp.stores import InMemoryTaskStore, TaskwarriorStore

# Re-export MCP server instance
from taskvoice_mcp.server import mcp

# Re-export tools
from taskvoice_mcp.tools import taskvoice_backends, taskvoice_execute, taskvoice_parse

# Re-export utilities (including private functions used by tests)
from taskvoice_mcp.utils import (
    _export_tasks,
    _parse_task,
    _parse_taskwarrior_task,
    _run_task_command,
    build_interpretation,
    clean_task_title,
    extract_date,
    extract_priority,
    normalize_status,
    parse_filter,
    resolve_task_reference,
)

__all__ = [
    # Enums
    "ResponseFormat",
    "TaskStatus",
    "Priority",
    "Action",
    "Target",
    "ParserUsed",
    "FallbackReason",
    # Configuration
    "Settings",
    "load_env_file",
    # Errors
    "TaskVoiceError",
    "BackendError",
    "LLMResponseError",
    "StoreError",
    "TaskNotFoundError",
    # Models
    "TaskModel",
    "TaskContext",
    "Command",
    "CommandFilters",
    "CommandUpdates",
    "ParsedResult",
    "EngineOk",
    "EngineErr",
    "CommandOutcome",
    "ExecutionReport",
    "BackendStatus",
    # Tool input models
    "ParseCommandInput",
    "ExecuteCommandInput",
    "BackendStatusInput",
    # Engines
    "LLMCommandParser",
    "build_backends",
    "check_backend_status",
    "parse_with_rules",
    # Service and execution
    "CommandService",
    "CommandExecutor",
    "TaskStore",
    "InMemoryTaskStore",
    "TaskwarriorStore",
    # Utility functions
    "extract_priority",
    "extract_date",
    "normalize_status",
    "parse_filter",
    "clean_task_title",
    "resolve_task_reference",
    "build_interpretation",
    "_run_task_command",
    "_export_tasks",
    "_parse_task",
    "_parse_taskwarrior_task",
    # Tools
    "taskvoice_parse",
    "taskvoice_execute",
    "taskvoice_backends",
    # MCP server instance
    "mcp",
]
