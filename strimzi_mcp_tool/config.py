"""Server settings read from the environment."""

import os
from dataclasses import dataclass

from strimzi_mcp_tool.certificates import DEFAULT_WARNING_DAYS


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{value}'") from e


@dataclass(frozen=True)
class Settings:
    non_destructive: bool = False
    cert_warning_days: int = DEFAULT_WARNING_DAYS
    log_level: str = "INFO"
    transport: str = "stdio"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            non_destructive=_env_bool("STRIMZI_MCP_NON_DESTRUCTIVE"),
            cert_warning_days=_env_int("STRIMZI_MCP_CERT_WARNING_DAYS", DEFAULT_WARNING_DAYS),
            log_level=os.environ.get("STRIMZI_MCP_LOG_LEVEL", "INFO").upper(),
            transport=os.environ.get("STRIMZI_MCP_TRANSPORT", "stdio"),
        )
