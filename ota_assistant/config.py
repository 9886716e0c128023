"""Centralized configuration for the OTA help-center assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/ota-assistant/<VARIABLE_NAME>``.

No secret is mandatory: a provider without a key fails fast inside the
failover chain and the offline mock backend is always last in line.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store, or ``None``."""
    try:
        import boto3  # noqa: PLC0415 (lazy import)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/ota-assistant/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_secret(name: str) -> str:
    """Return a secret from env-var or SSM, or an empty string if unset.

    Placeholder values copied from an example env file (``your_...``) count
    as unset.
    """
    value = os.getenv(name, "").strip()
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    if name.endswith("_API_KEY"):
        logger.debug("%s is not set; the matching provider will be skipped", name)
    return ""


def _csv(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


# ── Conversation ────────────────────────────────────────────────────
LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "gemini").strip().lower()
MAX_MESSAGES: int = int(os.getenv("MAX_MESSAGES", "12"))
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "600"))

# Set to "none,flight_status,route_weather" for the legacy action subset
ENABLED_TOOL_ACTIONS: tuple[str, ...] = _csv(
    "ENABLED_TOOL_ACTIONS",
    "none,flight_status,route_weather,weather_at_flight_arrival",
)

# ── LLM providers ───────────────────────────────────────────────────
GEMINI_API_KEY: str = _optional_secret("GEMINI_API_KEY")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_BASE_URL: str = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/models",
)

OPENAI_API_KEY: str = _optional_secret("OPENAI_API_KEY")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

ANTHROPIC_API_KEY: str = _optional_secret("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-haiku-4-5")

FREEFLOW_SERVICE_URL: str = os.getenv("FREEFLOW_SERVICE_URL", "http://localhost:8001")

# ── Travel data providers ───────────────────────────────────────────
AVIATIONSTACK_API_KEY: str = _optional_secret("AVIATIONSTACK_API_KEY")
AVIATIONSTACK_API_BASE_URL: str = os.getenv(
    "AVIATIONSTACK_API_BASE_URL", "https://api.aviationstack.com/v1",
)
# The free tier answers 403 when flight_date is sent
AVIATIONSTACK_SKIP_DATE: bool = os.getenv("AVIATIONSTACK_SKIP_DATE", "true").lower() != "false"

OPEN_METEO_BASE_URL: str = os.getenv("OPEN_METEO_BASE_URL", "https://api.open-meteo.com/v1")
OPEN_METEO_GEOCODING_BASE_URL: str = os.getenv(
    "OPEN_METEO_GEOCODING_BASE_URL", "https://geocoding-api.open-meteo.com/v1",
)

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
