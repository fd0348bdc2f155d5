"""Utility functions for the voice-command interpreter."""

from taskvoice_mcp.utils.cli import _export_tasks, _run_task_command
from taskvoice_mcp.utils.extractors import (
    clean_task_title,
    extract_date,
    extract_priority,
    extract_time,
    normalize_priority,
    normalize_status,
    parse_filter,
)
from taskvoice_mcp.utils.formatters import (
    build_interpretation,
    describe_command,
    format_backend_status_markdown,
    format_execution_json,
    format_execution_markdown,
    format_parsed_result_json,
    format_parsed_result_markdown,
    summarize_tasks,
)
from taskvoice_mcp.utils.logger import setup_logging
from taskvoice_mcp.utils.parsers import _parse_task, _parse_taskwarrior_task, _parse_taskwarrior_tasks
from taskvoice_mcp.utils.resolver import (
    Resolution,
    find_task_by_id,
    find_task_by_name,
    find_task_by_ordinal_or_number,
    resolve_task_reference,
)

__all__ = [
    # Extractors
    "extract_priority",
    "extract_date",
    "extract_time",
    "normalize_priority",
    "normalize_status",
    "parse_filter",
    "clean_task_title",
    # Resolver
    "Resolution",
    "resolve_task_reference",
    "find_task_by_name",
    "find_task_by_ordinal_or_number",
    "find_task_by_id",
    # Formatters
    "describe_command",
    "build_interpretation",
    "summarize_tasks",
    "format_parsed_result_markdown",
    "format_parsed_result_json",
    "format_execution_markdown",
    "format_execution_json",
    "format_backend_status_markdown",
    # Parsers
    "_parse_task",
    "_parse_taskwarrior_task",
    "_parse_taskwarrior_tasks",
    # CLI
    "_run_task_command",
    "_export_tasks",
    # Logging
    "setup_logging",
]
