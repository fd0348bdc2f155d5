"""FastMCP server initialization for the voice-command interpreter."""

from mcp.server.fastmcp import FastMCP

from taskvoice_mcp.config import Settings
from taskvoice_mcp.enums import StoreKind
from taskvoice_mcp.executor import TaskStore
from taskvoice_mcp.service import CommandService
from taskvoice_mcp.stores import InMemoryTaskStore, TaskwarriorStore
from taskvoice_mcp.utils.logger import setup_logging

# Initialize the MCP server
mcp = FastMCP("taskvoice_mcp")

# Built on first use so that importing the package never reads the environment.
_settings: Settings | None = None
_store: TaskStore | None = None
_service: CommandService | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_store() -> TaskStore:
    global _store
    if _store is None:
        if get_settings().store == StoreKind.TASKWARRIOR:
            _store = TaskwarriorStore()
        else:
            _store = InMemoryTaskStore()
    return _store


def get_service() -> CommandService:
    global _service
    if _service is None:
        _service = CommandService(get_settings())
    return _service


def configure(
    settings: Settings | None = None,
    store: TaskStore | None = None,
    service: CommandService | None = None,
) -> None:
    """Replace the process-wide settings, store and service (None resets to lazy defaults)."""
    global _settings, _store, _service
    _settings = settings
    _store = store
    _service = service


def run() -> None:
    """Run the MCP server."""
    setup_logging(get_settings().log_level)
    mcp.run()


if __name__ == "__main__":
    run()
