# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration, all env-driven.
Single source of truth for every tunable parameter.
"""

import os
import re

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)?\s*$")
_DURATION_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}


def parse_duration(value: str | None, default: float) -> float:
    """Parse "500ms", "3s", "5m", "2h", "1d" or bare seconds. Invalid -> default."""
    if not value:
        return default
    match = _DURATION_RE.match(value)
    if match is None:
        return default
    amount, unit = match.groups()
    seconds = float(amount) * _DURATION_UNITS[unit or "s"]
    return seconds if seconds > 0 else default


def parse_list(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "oncall-bot")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8080"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./oncall.db")
    POOL_SIZE: int = int(os.getenv("POOL_SIZE", "5"))
    MAX_OVERFLOW: int = int(os.getenv("MAX_OVERFLOW", "5"))
    POOL_RECYCLE: int = int(os.getenv("POOL_RECYCLE", "300"))

    # Slack
    SLACK_COMMAND_TOKEN: str = os.getenv("SLACK_COMMAND_TOKEN", "")
    SLACK_API_TOKEN: str = os.getenv("SLACK_API_TOKEN", "")
    SLACK_API_URL: str = os.getenv("SLACK_API_URL", "https://slack.com/api")
    COMMAND_ENDPOINT: str = os.getenv("COMMAND_ENDPOINT", "/oncall")

    # Timing
    OPERATION_TIMEOUT: float = parse_duration(os.getenv("OPERATION_TIMEOUT"), 3.0)
    USER_CACHE_TIMEOUT: float = parse_duration(os.getenv("USER_CACHE_TIMEOUT"), 86400.0)
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

    # Permissions
    SUPERUSERS: list[str] = parse_list(os.getenv("SUPERUSERS"))
    # Admins can only be demoted when someone else is left to administer.
    DEMOTE_ADMINS: bool = (
        os.getenv("DEMOTE_ADMINS", "false").lower() == "true" and bool(SUPERUSERS)
    )

    # Reply decoration
    ADMIN_SUB_TEAM_ID: str = os.getenv("ADMIN_SUB_TEAM_ID", "")
    INPUT_ERROR_EMOJI: str = os.getenv("INPUT_ERROR_EMOJI", ":exclamation:")
    EXTERNAL_ERROR_EMOJI: str = os.getenv(
        "EXTERNAL_ERROR_EMOJI", ":negative_squared_cross_mark:"
    )
    ATTACHMENT_COLOR: str = os.getenv("ATTACHMENT_COLOR", "EF203D")


settings = Settings()
