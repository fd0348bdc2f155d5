"""LLM-backed command parser.

Builds a prompt carrying the task context, sends it to the configured backends
in order, and validates the JSON that comes back. Every failure becomes an
``EngineErr`` so the caller can fall back to the rule engine.
"""

import json
import logging
import re
from datetime import timedelta
from typing import Any

import httpx
from pydantic import ValidationError

from taskvoice_mcp.config import Settings
from taskvoice_mcp.engines.backends import LLMBackend, build_backends
from taskvoice_mcp.enums import FallbackReason, ParserUsed
from taskvoice_mcp.exceptions import BackendError, LLMResponseError
from taskvoice_mcp.models.command import Command, EngineErr, EngineOk, EngineResult, ParsedResult
from taskvoice_mcp.models.task import TaskContext

logger = logging.getLogger(__name__)

MAX_PROMPT_TASKS = 10
# Confidence given to a model command that does not state one.
DEFAULT_LLM_CONFIDENCE = 0.5

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

PROMPT_TEMPLATE = """You are a voice command parser for a task manager. Turn natural speech into structured JSON commands.

RULES:
1. Output ONLY valid JSON. No markdown, no explanations, no extra text.
2. Extract EVERY intent in the sentence; one command object per intent.
3. Batch operations ("mark all tasks as completed") use the *_ALL actions.

CONTEXT:
Today's date: {today}
Current time: {time}
Existing tasks: {tasks}

OUTPUT SCHEMA:
{{
  "commands": [
    {{
      "action": "CREATE | UPDATE | DELETE | DELETE_ALL | UPDATE_ALL | READ",
      "target": "single | all | filtered",
      "taskId": "string | null",
      "taskTitle": "string | null",
      "filters": {{"status": "pending | in-progress | completed | null", "priority": "LOW | MEDIUM | HIGH | null"}},
      "updates": {{
        "status": "pending | in-progress | completed | null",
        "priority": "LOW | MEDIUM | HIGH | null",
        "dueDate": "YYYY-MM-DDTHH:MM:SS | null"
      }},
      "confidence": 0.0-1.0
    }}
  ],
  "interpretation": "short explanation"
}}

ACTIONS:
- DELETE: one task. "delete grocery task", "remove meeting".
- DELETE_ALL: all or filtered tasks. "delete all tasks", "clear all pending tasks".
- UPDATE: one task's status, priority or due date. "mark grocery as completed", "set dentist to high priority".
- UPDATE_ALL: every (or every filtered) task. "mark all tasks as pending", "set all to high priority".
- CREATE: a new task. "add task buy milk", "create meeting tomorrow high priority".
- READ: list tasks. "show all pending tasks", "list high priority tasks".

STATUS: pending, in-progress, completed. "done" means completed, "todo" means pending, "working" means in-progress.
PRIORITY: urgent/important/critical mean HIGH, normal means MEDIUM, low/later mean LOW.

DATES (relative to {today}):
- "today" -> {today}
- "tomorrow" -> {tomorrow}
- "day after tomorrow" -> {day_after}
- "next week" -> {next_week}
- morning 09:00, afternoon 14:00, evening 18:00, night 20:00

EXAMPLE: "delete all pending tasks and mark grocery as high priority tomorrow"
{{
  "commands": [
    {{"action": "DELETE_ALL", "target": "filtered", "filters": {{"status": "pending"}}, "confidence": 0.95}},
    {{"action": "UPDATE", "target": "single", "taskTitle": "grocery",
      "updates": {{"priority": "HIGH", "dueDate": "{tomorrow}T00:00:00"}}, "confidence": 0.9}}
  ],
  "interpretation": "Delete all pending tasks, then set grocery to high priority due tomorrow"
}}

TASK MATCHING: for single-task commands, match the spoken name against the existing tasks by title
(exact or partial) and copy its id into "taskId". Lower the confidence when the match is ambiguous.

FILTERS: "all tasks" -> no filters; "all pending tasks" -> {{"status": "pending"}};
"all high priority tasks" -> {{"priority": "HIGH"}}; "all pending high priority tasks" -> both.

Now parse this command: "{transcript}"

Return ONLY the JSON response."""


def build_prompt(transcript: str, context: TaskContext) -> str:
    """
    Render the instruction prompt for one transcript.

    At most ``MAX_PROMPT_TASKS`` tasks are included. Relative dates are worked
    out from ``context.now`` so the prompt is reproducible.
    """
    today = context.now.date()
    tasks = [
        {
            "id": task.id,
            "title": task.title,
            "status": task.status.value,
            "priority": task.priority.value,
            "dueDate": task.due_date[:10] if task.due_date else None,
        }
        for task in context.tasks[:MAX_PROMPT_TASKS]
    ]
    return PROMPT_TEMPLATE.format(
        today=today.isoformat(),
        time=context.now.strftime("%H:%M"),
        tasks=json.dumps(tasks),
        tomorrow=(today + timedelta(days=1)).isoformat(),
        day_after=(today + timedelta(days=2)).isoformat(),
        next_week=(today + timedelta(days=7)).isoformat(),
        transcript=transcript.replace('"', "'"),
    )


def clean_llm_response(text: str) -> str:
    """Strip code fences and keep the outermost ``{...}`` span."""
    cleaned = _FENCE.sub("", text).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        return cleaned[start : end + 1]
    return cleaned


def parse_llm_response(text: str, transcript: str) -> ParsedResult:
    """
    Decode and validate backend text into a ParsedResult.

    Raises:
        LLMResponseError: With ``reason`` set to invalid_json, schema_violation
            or empty_commands
    """
    try:
        data: Any = json.loads(clean_llm_response(text))
    except json.JSONDecodeError as e:
        raise LLMResponseError(FallbackReason.INVALID_JSON, f"Invalid JSON from LLM: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("commands"), list):
        raise LLMResponseError(FallbackReason.SCHEMA_VIOLATION, "Response has no commands array")
    if not data["commands"]:
        raise LLMResponseError(FallbackReason.EMPTY_COMMANDS, "Response has an empty commands array")

    raw_commands = []
    for raw in data["commands"]:
        if isinstance(raw, dict) and raw.get("confidence") is None:
            raw = {**raw, "confidence": DEFAULT_LLM_CONFIDENCE}
        raw_commands.append(raw)
    try:
        commands = [Command.model_validate(raw) for raw in raw_commands]
    except ValidationError as e:
        raise LLMResponseError(FallbackReason.SCHEMA_VIOLATION, f"Invalid command: {e.error_count()} error(s)") from e

    interpretation = data.get("interpretation")
    return ParsedResult(
        commands=commands,
        raw_transcript=transcript,
        interpretation=interpretation if isinstance(interpretation, str) else "",
        parser_used=ParserUsed.LLM,
    )


class LLMCommandParser:
    """Parse transcripts through the first backend that answers."""

    def __init__(
        self,
        settings: Settings,
        backends: list[LLMBackend] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self.backends = build_backends(settings) if backends is None else backends
        self._client = client

    async def _post(self, client: httpx.AsyncClient, backend: LLMBackend, prompt: str) -> str:
        try:
            response = await client.post(
                backend.endpoint,
                json=backend.build_request(prompt),
                headers=backend.headers,
                params=backend.params,
            )
        except httpx.HTTPError as e:
            raise BackendError(backend.name, f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise BackendError(backend.name, "Backend returned an error", response.status_code)

        try:
            text = backend.extract_text(response.json())
        except ValueError as e:
            raise BackendError(backend.name, "Backend answer is not JSON") from e

        if not text or not text.strip():
            raise BackendError(backend.name, "Backend returned no text")
        return text

    async def _complete(self, client: httpx.AsyncClient, prompt: str) -> str:
        errors = []
        for backend in self.backends:
            try:
                text = await self._post(client, backend, prompt)
            except BackendError as e:
                logger.warning("LLM backend %s failed: %s", backend.name, e)
                errors.append(str(e))
                continue
            logger.debug("LLM backend %s answered", backend.name)
            return text
        raise BackendError("all", "; ".join(errors) or "No backend configured")

    async def complete(self, prompt: str) -> str:
        """Send a prompt through the backend chain and return the raw text."""
        if self._client is not None:
            return await self._complete(self._client, prompt)
        timeout = {"timeout": self.settings.llm_timeout} if self.settings.llm_timeout is not None else {}
        async with httpx.AsyncClient(**timeout) as client:
            return await self._complete(client, prompt)

    async def parse(self, transcript: str, context: TaskContext) -> EngineResult:
        """
        Parse a transcript with the LLM backends.

        Never raises. Returns EngineOk with an unnormalized ParsedResult, or
        EngineErr carrying the reason the caller should fall back.
        """
        if not self.backends:
            return EngineErr(reason=FallbackReason.NO_BACKEND, detail="No LLM backend configured")

        try:
            text = await self.complete(build_prompt(transcript, context))
        except BackendError as e:
            return EngineErr(reason=FallbackReason.BACKEND_ERROR, detail=str(e))

        try:
            result = parse_llm_response(text, transcript)
        except LLMResponseError as e:
            logger.warning("Discarding LLM answer: %s", e.message)
            return EngineErr(reason=e.reason, detail=e.message)

        return EngineOk(result=result)
