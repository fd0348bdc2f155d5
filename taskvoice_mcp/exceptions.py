"""Exception hierarchy for the voice-command interpreter.

None of these escape ``CommandService.parse`` or ``CommandExecutor.execute``;
they travel between internal layers and are turned into engine errors or
failed command outcomes at those boundaries.
"""

from typing import Any

from taskvoice_mcp.enums import FallbackReason


class TaskVoiceError(Exception):
    """Base exception for all interpreter errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class BackendError(TaskVoiceError):
    """A generative-text backend was unreachable or answered with an error."""

    def __init__(self, backend: str, message: str, status_code: int | None = None):
        details: dict[str, Any] = {"backend": backend}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.backend = backend
        self.status_code = status_code


class LLMResponseError(TaskVoiceError):
    """Backend text could not be turned into valid commands."""

    def __init__(self, reason: FallbackReason, message: str):
        super().__init__(message, {"reason": reason.value})
        self.reason = reason


class StoreError(TaskVoiceError):
    """A task-store collaborator rejected an operation."""


class TaskNotFoundError(TaskVoiceError):
    """A command's task reference did not match any known task."""

    def __init__(self, reference: str | None):
        super().__init__(f"Task not found: {reference or 'no reference given'}")
        self.reference = reference
