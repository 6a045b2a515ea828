"""Environment configuration for the Actual Budget MCP server."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from .money import DEFAULT_CURRENCY_SYMBOL


REQUIRED_VARS = [
    "ACTUAL_API_URL",
    "ACTUAL_API_KEY",
    "ACTUAL_BUDGET_SYNC_ID",
]


class ConfigError(Exception):
    """Missing or invalid configuration."""

    pass


@dataclass(frozen=True)
class Settings:
    api_url: str
    api_key: str
    budget_sync_id: str
    encryption_password: str | None = None
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    log_level: str = "INFO"
    timeout: float = 30.0


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from the environment.

    Reads a .env file first when no explicit mapping is given.

    Args:
        env: Variables to read instead of os.environ (for tests).

    Raises:
        ConfigError: If a required variable is missing or a value is invalid.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    missing = [name for name in REQUIRED_VARS if not env.get(name)]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Point ACTUAL_API_URL at your actual-http-api instance."
        )

    timeout_raw = env.get("ACTUAL_TIMEOUT", "30")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ConfigError(f"ACTUAL_TIMEOUT must be a number, got {timeout_raw!r}") from None

    return Settings(
        api_url=env["ACTUAL_API_URL"],
        api_key=env["ACTUAL_API_KEY"],
        budget_sync_id=env["ACTUAL_BUDGET_SYNC_ID"],
        encryption_password=env.get("ACTUAL_ENCRYPTION_PASSWORD") or None,
        currency_symbol=env.get("CURRENCY_SYMBOL") or DEFAULT_CURRENCY_SYMBOL,
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        timeout=timeout,
    )
