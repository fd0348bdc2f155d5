"""MCP tool definitions for the voice-command interpreter."""

# Import all tools to register them with the MCP server
from taskvoice_mcp.tools.core import taskvoice_backends, taskvoice_execute, taskvoice_parse

__all__ = [
    "taskvoice_parse",
    "taskvoice_execute",
    "taskvoice_backends",
]
