"""Backend availability report model."""

from pydantic import BaseModel


class BackendStatus(BaseModel):
    """Availability report for one generative-text backend."""

    name: str
    model: str
    configured: bool = True
    reachable: bool | None = None
    model_available: bool | None = None
    detail: str = ""
