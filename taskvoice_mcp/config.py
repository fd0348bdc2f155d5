"""Runtime settings loaded from the environment and an optional ``.env`` file."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from taskvoice_mcp.enums import StoreKind

logger = logging.getLogger(__name__)

DEFAULT_LLM_ENDPOINT = "http://localhost:11434/api/generate"
DEFAULT_LLM_MODEL = "llama3.2:3b"
DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"


def load_env_file(path: str | Path | None = None) -> bool:
    """
    Load variables from a .env file without overriding the real environment.

    Args:
        path: Explicit .env path (default: search current dir and up to 3 parents)

    Returns:
        True if a file was loaded, False otherwise
    """
    if path:
        env_path: Path | None = Path(path)
    else:
        env_path = None
        current = Path.cwd()
        for _ in range(4):
            candidate = current / ".env"
            if candidate.exists():
                env_path = candidate
                break
            if current.parent == current:
                break
            current = current.parent

    if env_path and env_path.exists():
        load_dotenv(env_path, override=False)
        logger.debug("Loaded environment from %s", env_path)
        return True
    return False


def _get_bool(key: str, default: bool) -> bool:
    return os.getenv(key, str(default)).strip().lower() in ("true", "1", "yes", "on")


def _get_float(key: str, default: float | None) -> float | None:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", key, raw)
        return default


class Settings(BaseModel):
    """Interpreter configuration."""

    llm_enabled: bool = True
    llm_endpoint: str = DEFAULT_LLM_ENDPOINT
    llm_model: str = DEFAULT_LLM_MODEL
    llm_timeout: float | None = Field(default=None, description="Seconds; None keeps the HTTP client default")
    groq_api_key: str | None = None
    groq_model: str = DEFAULT_GROQ_MODEL
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    store: StoreKind = StoreKind.MEMORY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Settings":
        """Build settings from environment variables (after loading .env)."""
        load_env_file(env_file)
        store = os.getenv("TASKVOICE_STORE", StoreKind.MEMORY.value).strip().lower()
        if store not in {k.value for k in StoreKind}:
            logger.warning("Unknown TASKVOICE_STORE=%r, using memory", store)
            store = StoreKind.MEMORY.value
        return cls(
            llm_enabled=_get_bool("TASKVOICE_LLM_ENABLED", True),
            llm_endpoint=os.getenv("TASKVOICE_LLM_ENDPOINT", DEFAULT_LLM_ENDPOINT),
            llm_model=os.getenv("TASKVOICE_LLM_MODEL", DEFAULT_LLM_MODEL),
            llm_timeout=_get_float("TASKVOICE_LLM_TIMEOUT", None),
            groq_api_key=os.getenv("GROQ_API_KEY") or None,
            groq_model=os.getenv("GROQ_MODEL", DEFAULT_GROQ_MODEL),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            min_confidence=_get_float("TASKVOICE_MIN_CONFIDENCE", 0.5),
            store=StoreKind(store),
            log_level=os.getenv("TASKVOICE_LOG_LEVEL", "INFO").upper(),
        )
