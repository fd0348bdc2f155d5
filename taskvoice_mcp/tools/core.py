"""Core MCP tool definitions for the voice-command interpreter."""

import json

from mcp.types import ToolAnnotations

from taskvoice_mcp.engines.backends import check_backend_status
from taskvoice_mcp.enums import ResponseFormat
from taskvoice_mcp.exceptions import StoreError
from taskvoice_mcp.executor import CommandExecutor
from taskvoice_mcp.models.inputs import BackendStatusInput, ExecuteCommandInput, ParseCommandInput
from taskvoice_mcp.models.task import TaskContext
from taskvoice_mcp.server import get_service, get_settings, get_store, mcp
from taskvoice_mcp.utils.formatters import (
    format_backend_status_markdown,
    format_execution_json,
    format_execution_markdown,
    format_parsed_result_json,
    format_parsed_result_markdown,
)


@mcp.tool(
    name="taskvoice_parse",
    annotations=ToolAnnotations(
        title="Parse Voice Command",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    ),
)
async def taskvoice_parse(params: ParseCommandInput) -> str:
    """
    Interpret a spoken transcript as structured task commands without running them.

    USE THIS WHEN:
    - Previewing what a voice command would do
    - Turning speech into commands another system will execute
    - Checking which parser (LLM or rule-based) handled a phrase and why

    DO NOT USE WHEN:
    - You want the commands applied to the task store → use taskvoice_execute instead

    One sentence may hold several commands joined with "and", e.g.
    "delete all pending tasks and mark grocery as high priority".

    Args:
        params: ParseCommandInput containing transcript, optional tasks, and response_format

    Returns:
        Interpretation and commands (markdown or JSON based on response_format)

    Examples:
        - Create: transcript="add buy milk tomorrow morning"
        - Update: transcript="mark the second task as done"
        - Bulk: transcript="set all pending tasks to high priority"
        - Read: transcript="show my completed tasks"
    """
    service = get_service()

    if params.tasks is not None:
        tasks = params.tasks
    else:
        try:
            tasks = await get_store().list_tasks()
        except StoreError as e:
            return f"Error: Could not read tasks - {e}"

    service.update_context(tasks)
    result = await service.parse(params.transcript, TaskContext(tasks=tasks))

    if params.response_format == ResponseFormat.JSON:
        return format_parsed_result_json(result)
    return format_parsed_result_markdown(result)


@mcp.tool(
    name="taskvoice_execute",
    annotations=ToolAnnotations(
        title="Execute Voice Command",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=True,
    ),
)
async def taskvoice_execute(params: ExecuteCommandInput) -> str:
    """
    Interpret a spoken transcript and apply the resulting commands to the task store.

    USE THIS WHEN:
    - Acting on a voice command ("add call mom tomorrow", "delete all completed tasks")
    - Reading tasks back as a spoken summary ("what's on my list")

    DO NOT USE WHEN:
    - You only want to see how a phrase is understood → use taskvoice_parse instead

    Commands run in order, each seeing the effects of the ones before it. A
    failing command does not stop the rest. Commands below min_confidence are
    skipped and reported.

    Args:
        params: ExecuteCommandInput containing transcript, min_confidence, dry_run, and response_format

    Returns:
        Interpretation, per-command outcomes and spoken feedback

    Examples:
        - transcript="remind me to pay rent on the 1st of july"
        - transcript="mark first task complete and delete the last task"
        - transcript="clear all done tasks", dry_run=True
    """
    store = get_store()
    service = get_service()

    try:
        tasks = await store.list_tasks()
    except StoreError as e:
        return f"Error: Could not read tasks - {e}"

    service.update_context(tasks)
    result = await service.parse(params.transcript, TaskContext(tasks=tasks))

    if params.dry_run:
        if params.response_format == ResponseFormat.JSON:
            return json.dumps(
                {"dryRun": True, "parsed": result.model_dump(mode="json", by_alias=True)},
                indent=2,
            )
        return format_parsed_result_markdown(result) + "\n\n*Dry run: nothing was executed.*"

    min_confidence = params.min_confidence
    if min_confidence is None:
        min_confidence = get_settings().min_confidence
    report = await CommandExecutor(store, min_confidence=min_confidence).execute(result)

    if params.response_format == ResponseFormat.JSON:
        return format_execution_json(result, report)
    return format_execution_markdown(result, report)


@mcp.tool(
    name="taskvoice_backends",
    annotations=ToolAnnotations(
        title="LLM Backend Status",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    ),
)
async def taskvoice_backends(params: BackendStatusInput) -> str:
    """
    Report which LLM backends are configured and whether the local model server answers.

    USE THIS WHEN:
    - Commands keep coming back from the rule-based parser and you want to know why
    - Checking setup after changing TASKVOICE_LLM_* or API key variables

    Hosted backends are never called; they are reported from configuration only.

    Args:
        params: BackendStatusInput containing ping and response_format

    Returns:
        One entry per backend in fallback order (markdown or JSON)
    """
    statuses = await check_backend_status(get_settings(), ping=params.ping)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps([s.model_dump() for s in statuses], indent=2)
    return format_backend_status_markdown(statuses)
