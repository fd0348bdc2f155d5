"""Enums for the voice-command interpreter."""

from enum import Enum


class ResponseFormat(str, Enum):
    """Output format for tool responses."""

    MARKDOWN = "markdown"  # Human-readable (default)
    JSON = "json"  # Machine-readable with all fields


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Priority(str, Enum):
    """Task priority levels."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Action(str, Enum):
    """What a command does to the task collection."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    DELETE_ALL = "DELETE_ALL"
    UPDATE_ALL = "UPDATE_ALL"
    READ = "READ"
    UNKNOWN = "UNKNOWN"


class Target(str, Enum):
    """Scope of a command."""

    SINGLE = "single"
    ALL = "all"
    FILTERED = "filtered"


class ParserUsed(str, Enum):
    """Which engine produced a parsed result."""

    LLM = "llm"
    FALLBACK = "fallback"
    NONE = "none"


class FallbackReason(str, Enum):
    """Why the LLM engine did not produce the result."""

    DISABLED = "disabled"
    NO_BACKEND = "no_backend"
    BACKEND_ERROR = "backend_error"
    INVALID_JSON = "invalid_json"
    SCHEMA_VIOLATION = "schema_violation"
    EMPTY_COMMANDS = "empty_commands"


class StoreKind(str, Enum):
    """Task store backing the MCP tools."""

    MEMORY = "memory"
    TASKWARRIOR = "taskwarrior"
