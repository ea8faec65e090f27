"""Settings for the Digital Saathi assistant, read once at import time.

Each value comes from the environment (``.env`` is loaded first).  On AWS
(``AWS_EXECUTION_ENV`` set) secrets that are missing from the environment
are fetched from SSM Parameter Store under ``/digital-saathi/<NAME>``.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

SSM_PREFIX = "/digital-saathi"
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


@lru_cache(maxsize=1)
def _ssm_client():
    import boto3  # noqa: PLC0415  only needed on AWS

    return boto3.client("ssm")


def _from_ssm(name: str) -> str | None:
    """SecureString lookup; any failure is logged and reported as ``None``."""
    try:
        resp = _ssm_client().get_parameter(Name=f"{SSM_PREFIX}/{name}", WithDecryption=True)
    except Exception:
        logger.warning("SSM parameter %s/%s could not be read", SSM_PREFIX, name, exc_info=True)
        return None
    return resp["Parameter"]["Value"]


def _secret(name: str) -> str | None:
    value = os.getenv(name)
    # .env.example placeholders look like "your_..."
    if value and not value.startswith("your_"):
        return value
    return _from_ssm(name) if _ON_AWS else None


def _require_env(name: str) -> str:
    value = _secret(name)
    if value is None:
        raise OSError(
            f"{name} is not configured. Set it in the environment or .env, "
            f"or store it in SSM as {SSM_PREFIX}/{name}."
        )
    return value


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
# Tool-capable chat model (primary path)
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")
# Plain completion model (no tools, raw message only)
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", "claude-haiku-4-5")
MODEL_TIMEOUT_SECONDS: float = float(os.getenv("MODEL_TIMEOUT_SECONDS", "30"))
MODEL_MAX_TOKENS: int = int(os.getenv("MODEL_MAX_TOKENS", "1024"))
TOOL_CALLING_ENABLED: bool = _env_flag("TOOL_CALLING_ENABLED", True)

# ── Conversation engine ─────────────────────────────────────────────
SIMILARITY_THRESHOLD: float = float(os.getenv("SIMILARITY_THRESHOLD", "0.4"))
HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "20"))
DEFAULT_USER_ID: str = os.getenv("DEFAULT_USER_ID", "guest_user")

# ── Persistence (in-memory stores when MONGO_URI is unset) ──────────
MONGO_URI: str | None = _secret("MONGO_URI")
MONGO_DB: str = os.getenv("MONGO_DB", "digital_saathi")

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "5000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
