"""Tests for the LLM command parser and its backends."""

import json

import httpx
import pytest

from taskvoice_mcp import (
    Action,
    EngineErr,
    EngineOk,
    FallbackReason,
    LLMResponseError,
    ParserUsed,
    Priority,
    Settings,
    TaskContext,
    TaskModel,
    TaskStatus,
    build_backends,
    check_backend_status,
)
from taskvoice_mcp.engines.llm import LLMCommandParser, build_prompt, clean_llm_response, parse_llm_response

VALID_ANSWER = {
    "commands": [
        {
            "action": "DELETE_ALL",
            "target": "filtered",
            "filters": {"status": "pending"},
            "confidence": 0.95,
        },
        {
            "action": "UPDATE",
            "target": "single",
            "taskTitle": "grocery",
            "updates": {"priority": "HIGH", "status": "in-progress"},
            "confidence": 0.9,
        },
    ],
    "interpretation": "Delete pending tasks, then raise grocery priority",
}


def mock_client(handler) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def ollama_answer(payload) -> httpx.Response:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(200, json={"response": text})


class TestBuildPrompt:
    """Tests for build_prompt."""

    def test_prompt_contains_context(self, context):
        """Test date, time, tasks and transcript are in the prompt."""
        prompt = build_prompt("delete the groceries", context)
        assert "Today's date: 2025-06-15" in prompt
        assert "Current time: 10:00" in prompt
        assert '"tomorrow" -> 2025-06-16' in prompt
        assert '"title": "Buy groceries"' in prompt
        assert 'Now parse this command: "delete the groceries"' in prompt

    def test_prompt_caps_tasks(self, fixed_now):
        """Test only the first ten tasks are included."""
        tasks = [TaskModel(id=str(i), title=f"Task {i}") for i in range(1, 13)]
        prompt = build_prompt("show tasks", TaskContext(tasks=tasks, now=fixed_now))
        assert '"Task 10"' in prompt
        assert '"Task 11"' not in prompt

    def test_prompt_is_deterministic(self, context):
        """Test identical context gives an identical prompt."""
        assert build_prompt("add milk", context) == build_prompt("add milk", context)


class TestParseLLMResponse:
    """Tests for response cleaning and validation."""

    def test_clean_strips_fences(self):
        """Test markdown code fences are removed."""
        assert clean_llm_response('```json\n{"commands": []}\n```') == '{"commands": []}'

    def test_clean_slices_braces(self):
        """Test chatter around the JSON object is dropped."""
        assert clean_llm_response('Sure! {"a": {"b": 1}} Hope that helps') == '{"a": {"b": 1}}'

    def test_valid_answer(self):
        """Test a valid answer becomes commands with coerced values."""
        result = parse_llm_response(json.dumps(VALID_ANSWER), "delete pending and grocery high")
        assert result.parser_used == ParserUsed.LLM
        assert result.raw_transcript == "delete pending and grocery high"
        assert [c.action for c in result.commands] == [Action.DELETE_ALL, Action.UPDATE]
        assert result.commands[0].filters.status == TaskStatus.PENDING
        assert result.commands[1].updates.priority == Priority.HIGH
        assert result.commands[1].updates.status == TaskStatus.IN_PROGRESS
        assert result.interpretation.startswith("Delete pending tasks")

    def test_confidence_is_clamped(self):
        """Test out-of-range confidence is clamped."""
        answer = {"commands": [{"action": "read", "target": "all", "confidence": 1.7}]}
        result = parse_llm_response(json.dumps(answer), "show tasks")
        assert result.commands[0].action == Action.READ
        assert result.commands[0].confidence == 1.0

    def test_missing_confidence_defaults(self):
        """Test commands without a confidence stay runnable."""
        answer = {
            "commands": [
                {"action": "DELETE", "target": "single", "taskId": "1"},
                {"action": "READ", "target": "all", "confidence": None},
            ]
        }
        result = parse_llm_response(json.dumps(answer), "delete the first one and show tasks")
        assert [c.confidence for c in result.commands] == [0.5, 0.5]

    @pytest.mark.parametrize(
        "text,reason",
        [
            ("not json at all", FallbackReason.INVALID_JSON),
            ('{"commands": [', FallbackReason.INVALID_JSON),
            ('{"foo": 1}', FallbackReason.SCHEMA_VIOLATION),
            ('{"commands": "delete"}', FallbackReason.SCHEMA_VIOLATION),
            ('{"commands": []}', FallbackReason.EMPTY_COMMANDS),
            ('{"commands": [{"action": "FLY"}]}', FallbackReason.SCHEMA_VIOLATION),
            (
                '{"commands": [{"action": "DELETE_ALL", "target": "filtered", "filters": {"project": "work"}}]}',
                FallbackReason.SCHEMA_VIOLATION,
            ),
            (
                '{"commands": [{"action": "UPDATE_ALL", "target": "filtered", "filters": {"status": null},'
                ' "updates": {"priority": "LOW"}}]}',
                FallbackReason.SCHEMA_VIOLATION,
            ),
        ],
    )
    def test_rejections(self, text, reason):
        """Test each kind of bad answer is rejected with its reason."""
        with pytest.raises(LLMResponseError) as exc_info:
            parse_llm_response(text, "anything")
        assert exc_info.value.reason == reason


class TestBackends:
    """Tests for backend adapters."""

    def test_local_backend_only_by_default(self):
        """Test hosted backends need an API key."""
        assert [b.name for b in build_backends(Settings())] == ["ollama"]

    def test_all_backends_in_order(self):
        """Test backend priority order."""
        settings = Settings(groq_api_key="gk", gemini_api_key="mk")
        assert [b.name for b in build_backends(settings)] == ["ollama", "groq", "gemini"]

    def test_ollama_request_shape(self):
        """Test the local request forces JSON output."""
        backend = build_backends(Settings(llm_model="mistral"))[0]
        body = backend.build_request("hi")
        assert body["model"] == "mistral"
        assert body["stream"] is False
        assert body["format"] == "json"
        assert body["options"]["temperature"] == 0.1

    def test_extract_text_tolerates_bad_shapes(self):
        """Test extractors return None for unexpected answers."""
        for backend in build_backends(Settings(groq_api_key="gk", gemini_api_key="mk")):
            assert backend.extract_text({}) is None
            assert backend.extract_text([]) is None

    def test_extract_text_rejects_non_strings(self):
        """Test null or structured content is not passed on as text."""
        groq, gemini = build_backends(Settings(groq_api_key="gk", gemini_api_key="mk"))[1:]
        assert groq.extract_text({"choices": [{"message": {"content": None}}]}) is None
        assert groq.extract_text({"choices": [{"message": {"content": [{"type": "text"}]}}]}) is None
        assert gemini.extract_text({"candidates": [{"content": {"parts": [{"text": 42}]}}]}) is None


class TestLLMCommandParser:
    """Tests for LLMCommandParser.parse."""

    @pytest.mark.asyncio
    async def test_parse_success(self, context):
        """Test a valid local answer."""
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return ollama_answer(VALID_ANSWER)

        async with mock_client(handler) as client:
            outcome = await LLMCommandParser(Settings(), client=client).parse("delete pending", context)

        assert isinstance(outcome, EngineOk)
        assert outcome.ok
        assert len(outcome.result.commands) == 2
        assert "delete pending" in seen["body"]["prompt"]

    @pytest.mark.asyncio
    async def test_falls_through_to_groq(self, context):
        """Test a failing local server hands over to the next backend."""
        seen = {}

        def handler(request):
            if request.url.host == "localhost":
                return httpx.Response(500, text="model not loaded")
            seen["auth"] = request.headers.get("Authorization")
            content = json.dumps(VALID_ANSWER)
            return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

        async with mock_client(handler) as client:
            parser = LLMCommandParser(Settings(groq_api_key="gk"), client=client)
            outcome = await parser.parse("delete pending", context)

        assert isinstance(outcome, EngineOk)
        assert seen["auth"] == "Bearer gk"

    @pytest.mark.asyncio
    async def test_gemini_key_in_query(self, context):
        """Test the Gemini key travels as a query parameter."""
        seen = {}

        def handler(request):
            if request.url.host == "localhost":
                raise httpx.ConnectError("connection refused", request=request)
            seen["key"] = request.url.params.get("key")
            text = json.dumps(VALID_ANSWER)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

        async with mock_client(handler) as client:
            parser = LLMCommandParser(Settings(gemini_api_key="mk"), client=client)
            outcome = await parser.parse("delete pending", context)

        assert isinstance(outcome, EngineOk)
        assert seen["key"] == "mk"

    @pytest.mark.asyncio
    async def test_all_backends_fail(self, context):
        """Test network failures become a backend_error."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            outcome = await LLMCommandParser(Settings(groq_api_key="gk"), client=client).parse("x", context)

        assert isinstance(outcome, EngineErr)
        assert not outcome.ok
        assert outcome.reason == FallbackReason.BACKEND_ERROR

    @pytest.mark.asyncio
    async def test_empty_text_is_backend_error(self, context):
        """Test a blank answer counts as a failed backend."""
        async with mock_client(lambda request: ollama_answer("   ")) as client:
            outcome = await LLMCommandParser(Settings(), client=client).parse("x", context)
        assert outcome.reason == FallbackReason.BACKEND_ERROR

    @pytest.mark.asyncio
    async def test_invalid_json(self, context):
        """Test unparseable text is reported as invalid_json."""
        async with mock_client(lambda request: ollama_answer("I cannot help with that")) as client:
            outcome = await LLMCommandParser(Settings(), client=client).parse("x", context)
        assert outcome.reason == FallbackReason.INVALID_JSON

    @pytest.mark.asyncio
    async def test_empty_commands(self, context):
        """Test an empty commands array is reported as empty_commands."""
        async with mock_client(lambda request: ollama_answer({"commands": []})) as client:
            outcome = await LLMCommandParser(Settings(), client=client).parse("x", context)
        assert outcome.reason == FallbackReason.EMPTY_COMMANDS

    @pytest.mark.asyncio
    async def test_null_chat_content_is_backend_error(self, context):
        """Test a chat answer with null content falls through as a backend failure."""

        def handler(request):
            if request.url.host == "localhost":
                return httpx.Response(500)
            return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

        async with mock_client(handler) as client:
            outcome = await LLMCommandParser(Settings(groq_api_key="gk"), client=client).parse("x", context)
        assert outcome.reason == FallbackReason.BACKEND_ERROR

    @pytest.mark.asyncio
    async def test_filtered_without_filters_is_rejected(self, context):
        """Test a filtered bulk delete with no usable filter is not accepted."""
        answer = {
            "commands": [
                {"action": "DELETE_ALL", "target": "filtered", "filters": {"project": "work"}, "confidence": 0.95}
            ]
        }
        async with mock_client(lambda request: ollama_answer(answer)) as client:
            outcome = await LLMCommandParser(Settings(), client=client).parse("delete work tasks", context)
        assert isinstance(outcome, EngineErr)
        assert outcome.reason == FallbackReason.SCHEMA_VIOLATION

    @pytest.mark.asyncio
    async def test_no_backends(self, context):
        """Test an empty backend list is reported as no_backend."""
        outcome = await LLMCommandParser(Settings(), backends=[]).parse("x", context)
        assert outcome.reason == FallbackReason.NO_BACKEND


class TestCheckBackendStatus:
    """Tests for check_backend_status."""

    @pytest.mark.asyncio
    async def test_model_present(self):
        """Test a reachable server with the model pulled."""

        def handler(request):
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": [{"name": "llama3.2:3b"}]})

        async with mock_client(handler) as client:
            statuses = await check_backend_status(Settings(), client=client)

        local = statuses[0]
        assert local.name == "ollama"
        assert local.reachable is True
        assert local.model_available is True
        assert [s.name for s in statuses] == ["ollama", "groq", "gemini"]
        assert statuses[1].configured is False

    @pytest.mark.asyncio
    async def test_model_missing(self):
        """Test a reachable server without the model."""
        async with mock_client(lambda request: httpx.Response(200, json={"models": []})) as client:
            statuses = await check_backend_status(Settings(), client=client)
        assert statuses[0].model_available is False
        assert "ollama pull" in statuses[0].detail

    @pytest.mark.asyncio
    async def test_unreachable(self):
        """Test a server that refuses connections."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            statuses = await check_backend_status(Settings(), client=client)
        assert statuses[0].reachable is False

    @pytest.mark.asyncio
    async def test_no_ping_and_disabled(self):
        """Test configuration-only reports."""
        statuses = await check_backend_status(Settings(groq_api_key="gk"), ping=False)
        assert statuses[0].reachable is None
        assert statuses[1].configured is True

        statuses = await check_backend_status(Settings(llm_enabled=False, groq_api_key="gk"))
        assert all(not s.configured for s in statuses)
