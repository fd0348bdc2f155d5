"""Command service: LLM first, rule parser as fallback, one normalized result out."""

import logging
from collections.abc import Iterable
from typing import Any

from taskvoice_mcp.config import Settings
from taskvoice_mcp.engines.llm import LLMCommandParser
from taskvoice_mcp.engines.rules import parse_with_rules
from taskvoice_mcp.enums import FallbackReason, ParserUsed
from taskvoice_mcp.models.command import UNRESOLVED_CONFIDENCE_CEILING, Command, EngineErr, EngineOk, ParsedResult
from taskvoice_mcp.models.task import TaskContext, TaskModel
from taskvoice_mcp.utils.formatters import build_interpretation
from taskvoice_mcp.utils.parsers import _parse_task
from taskvoice_mcp.utils.resolver import find_task_by_id, resolve_task_reference

logger = logging.getLogger(__name__)


def normalize_command(command: Command, tasks: list[TaskModel]) -> Command:
    """
    Tie a command's task reference to the snapshot.

    Known ids (literal or ``task_<n>``) are mapped to the real task. Single-task
    references without an id are resolved by title. Whatever stays unresolved
    is capped at the unresolved confidence ceiling.
    """
    if not command.references_task:
        return command

    task = find_task_by_id(command.task_id, tasks)
    if task is None and command.task_id and not tasks:
        # Nothing to check the id against.
        return command
    if task is None:
        resolution = resolve_task_reference(command.task_title, tasks)
        task = resolution.task if resolution else None

    if task is not None:
        return command.model_copy(update={"task_id": task.id, "task_title": command.task_title or task.title})
    return command.model_copy(
        update={"task_id": None, "confidence": min(command.confidence, UNRESOLVED_CONFIDENCE_CEILING)}
    )


class CommandService:
    """
    Turns transcripts into structured commands.

    Holds the latest task snapshot so callers that do not pass an explicit
    context still get references resolved.
    """

    def __init__(self, settings: Settings | None = None, llm_parser: LLMCommandParser | None = None):
        self.settings = settings or Settings()
        if llm_parser is None and self.settings.llm_enabled:
            llm_parser = LLMCommandParser(self.settings)
        self.llm_parser = llm_parser
        self._tasks: list[TaskModel] = []

    @property
    def tasks(self) -> list[TaskModel]:
        return list(self._tasks)

    def update_context(self, tasks: Iterable[TaskModel | dict[str, Any]]) -> None:
        """Replace the stored task snapshot."""
        self._tasks = [t if isinstance(t, TaskModel) else _parse_task(t) for t in tasks]
        logger.debug("Task context updated: %d tasks", len(self._tasks))

    async def _try_llm(self, transcript: str, context: TaskContext) -> EngineOk | EngineErr:
        if not self.settings.llm_enabled or self.llm_parser is None:
            return EngineErr(reason=FallbackReason.DISABLED, detail="LLM parsing disabled")
        try:
            return await self.llm_parser.parse(transcript, context)
        except Exception as e:
            logger.exception("LLM parser raised unexpectedly")
            return EngineErr(reason=FallbackReason.BACKEND_ERROR, detail=str(e))

    def _normalize(self, result: ParsedResult, context: TaskContext) -> ParsedResult:
        commands = [normalize_command(c, context.tasks) for c in result.commands]
        return result.model_copy(
            update={
                "commands": commands,
                "interpretation": result.interpretation or build_interpretation(commands),
            }
        )

    async def parse(self, transcript: str | None, context: TaskContext | None = None) -> ParsedResult:
        """
        Parse a transcript into commands. Never raises.

        Args:
            transcript: Raw speech-to-text output
            context: Explicit snapshot; defaults to the stored one at the current time

        Returns:
            ParsedResult tagged with the engine that produced it and, for the
            rule engine, the reason the LLM was not used
        """
        if not transcript or not transcript.strip():
            return ParsedResult(
                commands=[],
                raw_transcript=transcript or "",
                interpretation="No speech detected",
                parser_used=ParserUsed.NONE,
            )

        context = context or TaskContext(tasks=self._tasks)

        outcome = await self._try_llm(transcript, context)
        if isinstance(outcome, EngineOk):
            logger.info("Parsed with LLM: %d command(s)", len(outcome.result.commands))
            return self._normalize(outcome.result, context)

        if outcome.reason == FallbackReason.DISABLED:
            logger.debug("LLM disabled, using rule parser")
        else:
            logger.info("Falling back to rule parser (%s): %s", outcome.reason.value, outcome.detail)

        result = parse_with_rules(transcript, context)
        result = self._normalize(result, context)
        return result.model_copy(update={"parser_used": ParserUsed.FALLBACK, "fallback_reason": outcome.reason})
