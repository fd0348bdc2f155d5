"""Input models for the voice-command MCP tools."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskvoice_mcp.enums import ResponseFormat
from taskvoice_mcp.models.task import TaskModel


class ParseCommandInput(BaseModel):
    """Input model for parsing a transcript without executing it."""

    model_config = ConfigDict(str_strip_whitespace=True)

    transcript: str = Field(..., description="Speech-to-text transcript to interpret", max_length=2000)
    tasks: list[TaskModel] | None = Field(
        default=None,
        description="Current task list used to resolve references. Omit to read it from the configured store.",
        max_length=500,
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable or 'json' for machine-readable",
    )


class ExecuteCommandInput(BaseModel):
    """Input model for parsing a transcript and executing the resulting commands."""

    model_config = ConfigDict(str_strip_whitespace=True)

    transcript: str = Field(..., description="Speech-to-text transcript to interpret and run", min_length=1, max_length=2000)
    min_confidence: float | None = Field(
        default=None,
        description="Commands below this confidence are skipped (default from TASKVOICE_MIN_CONFIDENCE)",
        ge=0.0,
        le=1.0,
    )
    dry_run: bool = Field(default=False, description="Parse and report what would run, without touching the store")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable or 'json' for machine-readable",
    )

    @field_validator("transcript")
    @classmethod
    def validate_transcript(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Transcript cannot be empty")
        return v.strip()


class BackendStatusInput(BaseModel):
    """Input model for checking generative-text backend availability."""

    ping: bool = Field(default=True, description="Contact the local model server instead of only listing configuration")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable or 'json' for machine-readable",
    )
