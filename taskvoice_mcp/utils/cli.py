"""Taskwarrior CLI runner used by the Taskwarrior-backed task store."""

import json
import logging
import subprocess
from typing import Any

logger = logging.getLogger(__name__)

TASK_TIMEOUT_SECONDS = 30

# Keeps the CLI from prompting on bulk or destructive operations. Must precede
# the arguments; nothing after "--" is read as an override.
NON_INTERACTIVE = ["rc.confirmation=off", "rc.bulk=0", "rc.verbose=nothing"]


def _run_task_command(args: list[str], input_text: str | None = None) -> tuple[bool, str]:
    """
    Execute a Taskwarrior command and return the result.

    Args:
        args: List of command arguments (without 'task' prefix)
        input_text: Optional input to send to stdin (for confirmations)

    Returns:
        Tuple of (success: bool, output: str)
    """
    cmd = ["task", *NON_INTERACTIVE, *args]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=TASK_TIMEOUT_SECONDS, input=input_text)
    except subprocess.TimeoutExpired:
        return False, f"Error: Command timed out after {TASK_TIMEOUT_SECONDS} seconds"
    except FileNotFoundError:
        return False, (
            "Error: Taskwarrior is not installed or not in PATH. Install it with 'brew install task' or equivalent."
        )
    except OSError as e:
        return False, f"Error: Could not run Taskwarrior - {type(e).__name__}: {e}"

    output = result.stdout.strip()
    if result.returncode != 0:
        error = result.stderr.strip() or output
        logger.warning("Taskwarrior exited with %d: %s", result.returncode, error)
        return False, f"Error: {error}"
    return True, output


def _export_tasks(filter_args: list[str] | None = None) -> tuple[bool, list[dict[str, Any]] | str]:
    """
    Export tasks as JSON from Taskwarrior.

    Args:
        filter_args: Filter terms placed before the export command

    Returns:
        Tuple of (success: bool, tasks: list[dict] | error: str)
    """
    success, output = _run_task_command((filter_args or []) + ["export"])
    if not success:
        return False, output

    try:
        tasks = json.loads(output) if output else []
    except json.JSONDecodeError as e:
        return False, f"Error: Failed to parse task output - {e}"
    return True, tasks
