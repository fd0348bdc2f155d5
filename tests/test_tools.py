"""Tests for the MCP tools, their input models and output formatting."""

import json
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from taskvoice_mcp import (
    BackendStatus,
    BackendStatusInput,
    ExecuteCommandInput,
    InMemoryTaskStore,
    ParseCommandInput,
    ResponseFormat,
    Settings,
    StoreError,
    TaskModel,
    taskvoice_backends,
    taskvoice_execute,
    taskvoice_parse,
)
from taskvoice_mcp.server import configure
from taskvoice_mcp.utils.formatters import format_backend_status_markdown


@pytest.fixture
def store(sample_tasks):
    """Install an offline server with an in-memory store, reset afterwards."""
    store = InMemoryTaskStore(sample_tasks)
    configure(settings=Settings(llm_enabled=False), store=store)
    yield store
    configure()


class TestInputModels:
    """Tests for the tool input models."""

    def test_execute_rejects_blank_transcript(self):
        """Test blank transcripts are refused before parsing."""
        with pytest.raises(ValidationError):
            ExecuteCommandInput(transcript="   ")

    def test_execute_confidence_bounds(self):
        """Test min_confidence must be a probability."""
        with pytest.raises(ValidationError):
            ExecuteCommandInput(transcript="add milk", min_confidence=1.5)

    def test_execute_defaults(self):
        """Test defaults."""
        params = ExecuteCommandInput(transcript="  add milk ")
        assert params.transcript == "add milk"
        assert params.min_confidence is None
        assert params.dry_run is False
        assert params.response_format == ResponseFormat.MARKDOWN

    def test_parse_accepts_task_dicts(self):
        """Test camelCase task records are accepted."""
        params = ParseCommandInput(transcript="show tasks", tasks=[{"id": 7, "title": "Plan trip", "dueDate": None}])
        assert params.tasks[0].id == "7"


class TestTaskvoiceParse:
    """Tests for the taskvoice_parse tool."""

    @pytest.mark.asyncio
    async def test_markdown(self, store):
        """Test markdown output names the parser and the command."""
        result = await taskvoice_parse(ParseCommandInput(transcript="delete task 2"))
        assert "# Voice Command" in result
        assert "**Interpretation**: Delete task: Call mom" in result
        assert "(LLM unavailable: disabled)" in result
        assert "task id `2`" in result
        assert len(await store.list_tasks()) == 4

    @pytest.mark.asyncio
    async def test_json(self, store):
        """Test JSON output uses camelCase keys."""
        params = ParseCommandInput(transcript="delete task 2", response_format=ResponseFormat.JSON)
        data = json.loads(await taskvoice_parse(params))
        assert data["parserUsed"] == "fallback"
        assert data["fallbackReason"] == "disabled"
        assert data["rawTranscript"] == "delete task 2"
        assert data["commands"][0]["action"] == "DELETE"
        assert data["commands"][0]["taskId"] == "2"
        assert data["confidence"] == pytest.approx(0.85)

    @pytest.mark.asyncio
    async def test_explicit_tasks(self, store):
        """Test tasks passed in the call take the place of the store's."""
        params = ParseCommandInput(
            transcript="delete pay rent",
            tasks=[TaskModel(id="z", title="Pay rent")],
            response_format=ResponseFormat.JSON,
        )
        data = json.loads(await taskvoice_parse(params))
        assert data["commands"][0]["taskId"] == "z"

    @pytest.mark.asyncio
    async def test_store_error(self, store):
        """Test an unreadable store is reported."""
        store.list_tasks = AsyncMock(side_effect=StoreError("Taskwarrior is not installed"))
        result = await taskvoice_parse(ParseCommandInput(transcript="show tasks"))
        assert result.startswith("Error: Could not read tasks")


class TestTaskvoiceExecute:
    """Tests for the taskvoice_execute tool."""

    @pytest.mark.asyncio
    async def test_execute(self, store):
        """Test commands are applied and reported."""
        result = await taskvoice_execute(ExecuteCommandInput(transcript="delete call mom and add call dad"))
        assert '1. [OK] Deleted "Call mom".' in result
        assert '2. [OK] Created task "call dad".' in result
        assert "*2 succeeded, 0 failed, 0 skipped*" in result
        titles = [t.title for t in await store.list_tasks()]
        assert "Call mom" not in titles
        assert "call dad" in titles

    @pytest.mark.asyncio
    async def test_dry_run(self, store):
        """Test a dry run leaves the store alone."""
        result = await taskvoice_execute(ExecuteCommandInput(transcript="delete all tasks", dry_run=True))
        assert "Dry run: nothing was executed" in result
        assert len(await store.list_tasks()) == 4

    @pytest.mark.asyncio
    async def test_dry_run_json(self, store):
        """Test a JSON dry run wraps the parsed result."""
        params = ExecuteCommandInput(transcript="delete all tasks", dry_run=True, response_format=ResponseFormat.JSON)
        data = json.loads(await taskvoice_execute(params))
        assert data["dryRun"] is True
        assert data["parsed"]["commands"][0]["action"] == "DELETE_ALL"
        assert len(await store.list_tasks()) == 4

    @pytest.mark.asyncio
    async def test_json(self, store):
        """Test JSON execution output."""
        params = ExecuteCommandInput(transcript="what's on my list", response_format=ResponseFormat.JSON)
        data = json.loads(await taskvoice_execute(params))
        assert data["succeeded"] == 1
        assert data["failed"] == 0
        assert data["feedback"].startswith("You have 4 tasks.")
        assert data["outcomes"][0]["success"] is True

    @pytest.mark.asyncio
    async def test_min_confidence(self, store):
        """Test a per-call threshold skips commands below it."""
        result = await taskvoice_execute(ExecuteCommandInput(transcript="delete task 2", min_confidence=0.9))
        assert "[SKIPPED]" in result
        assert len(await store.list_tasks()) == 4

    @pytest.mark.asyncio
    async def test_threshold_from_settings(self, sample_tasks):
        """Test the configured threshold applies when none is given."""
        store = InMemoryTaskStore(sample_tasks)
        configure(settings=Settings(llm_enabled=False, min_confidence=0.95), store=store)
        try:
            result = await taskvoice_execute(ExecuteCommandInput(transcript="delete all completed tasks"))
        finally:
            configure()
        assert "*0 succeeded, 0 failed, 1 skipped*" in result
        assert len(await store.list_tasks()) == 4


class TestTaskvoiceBackends:
    """Tests for the taskvoice_backends tool."""

    @pytest.mark.asyncio
    async def test_disabled(self, store):
        """Test a disabled LLM reports every backend as not configured."""
        result = await taskvoice_backends(BackendStatusInput(ping=False))
        assert "# LLM Backends" in result
        assert "**ollama** (llama3.2:3b): not configured" in result
        assert "rule-based parser" in result

    @pytest.mark.asyncio
    async def test_json(self, sample_tasks):
        """Test JSON output lists backends in fallback order."""
        configure(settings=Settings(groq_api_key="gk"), store=InMemoryTaskStore(sample_tasks))
        try:
            params = BackendStatusInput(ping=False, response_format=ResponseFormat.JSON)
            data = json.loads(await taskvoice_backends(params))
        finally:
            configure()
        assert [b["name"] for b in data] == ["ollama", "groq", "gemini"]
        assert data[1]["configured"] is True
        assert data[2]["configured"] is False


class TestFormatBackendStatus:
    """Tests for format_backend_status_markdown."""

    def test_states(self):
        """Test every availability state is spelled out."""
        statuses = [
            BackendStatus(name="ollama", model="llama3.2:3b", reachable=True, model_available=False, detail="pull it"),
            BackendStatus(name="groq", model="llama-3.1-8b-instant"),
            BackendStatus(name="gemini", model="gemini-1.5-flash", configured=False),
        ]
        result = format_backend_status_markdown(statuses)
        assert "1. **ollama** (llama3.2:3b): reachable, model missing" in result
        assert "   - pull it" in result
        assert "2. **groq** (llama-3.1-8b-instant): configured" in result
        assert "3. **gemini** (gemini-1.5-flash): not configured" in result
        assert "rule-based parser" not in result

    def test_nothing_usable(self):
        """Test the rule-parser note when no backend can answer."""
        statuses = [BackendStatus(name="ollama", model="llama3.2:3b", reachable=False)]
        assert "rule-based parser" in format_backend_status_markdown(statuses)
