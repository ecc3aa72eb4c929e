"""
hookpilot/shared.py
Shared utilities for the hookpilot agent service.
Exports: _required_env, _required_gemini_api_key, env_flag, env_positive_int, build_llm, AgentRunResult
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_MODEL = "gemini/gemini-2.5-flash"
DEFAULT_MODEL_MAX_TOKENS = 4096
DEFAULT_MAX_ITERATIONS = 10
DEFAULT_MAX_SKILLS = 3
DEFAULT_JOB_DB_PATH = "data/hookpilot.db"
DEFAULT_SKILLS_DIR = str(Path(__file__).parents[1] / "skills")
DEFAULT_WORKSPACE_DIR = "workspace"

_FALSY = {"0", "false", "no", "off"}


@dataclass
class AgentRunResult:
    """Return type for one agent loop run."""

    success: bool
    steps: list[str] = field(default_factory=list)
    error: str | None = None
    budget_exhausted: bool = False
    iterations: int = 0
    final_text: str = ""


def _required_env(name: str) -> str:
    """Read a required environment variable or raise RuntimeError."""
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def _required_gemini_api_key() -> str:
    """Return GEMINI_API_KEY, with GOOGLE_API_KEY legacy fallback."""
    gemini_key = os.getenv("GEMINI_API_KEY", "").strip()
    if gemini_key:
        return gemini_key
    legacy_key = os.getenv("GOOGLE_API_KEY", "").strip()
    if legacy_key:
        return legacy_key
    raise RuntimeError("Missing required env var: GEMINI_API_KEY (or GOOGLE_API_KEY)")


def env_flag(name: str, default: bool = True) -> bool:
    """Return a boolean env flag; `0/false/no/off` are falsy."""
    value = os.getenv(name, "true" if default else "false").strip().lower()
    return value not in _FALSY


def env_positive_int(name: str, default: int) -> int:
    """Return a positive integer env value or raise RuntimeError when invalid."""
    raw_value = os.getenv(name, str(default)).strip()
    try:
        number = int(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid {name}: expected a positive integer.") from exc
    if number <= 0:
        raise RuntimeError(f"Invalid {name}: expected a positive integer.")
    return number


def build_llm() -> str:
    """Return configured LiteLLM model name."""
    return os.getenv("HOOKPILOT_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL


def resolve_model_api_key(model: str) -> str | None:
    """
    Resolve the API key passed to the model provider.

    Args:
        model: LiteLLM model id.
    Returns:
        Explicit key, Gemini key for `gemini/` models, or None to let LiteLLM
        read its own provider env vars.
    Raises:
        RuntimeError: Gemini model configured without a Gemini key.
    """
    explicit = os.getenv("HOOKPILOT_MODEL_API_KEY", "").strip()
    if explicit:
        return explicit
    if model.startswith("gemini/"):
        return _required_gemini_api_key()
    return None
