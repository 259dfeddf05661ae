"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating values and providing actionable error messages.
"""

import os
from typing import Literal

import dotenv
from pydantic import BaseModel, Field, field_validator

from .models import Level


def _get_env_str(name: str, default: str) -> str:
    """Read a string env var with a default (blank counts as unset)."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _get_env_list(name: str) -> list[str]:
    """Read a comma-separated env var into a list of non-empty items."""
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class LogSinkConfig(BaseModel):
    """Configuration for the SQL log sink."""

    db_path: str = Field(default="logs.duckdb", description="Database file (':memory:' for in-memory)")
    backend: Literal["duckdb", "sqlite"] = Field(default="duckdb", description="Database engine")
    allow_list: list[str] = Field(default_factory=list, description="Path prefixes that may be recorded")
    deny_list: list[str] = Field(default_factory=list, description="Path prefixes that are never recorded")
    max_level: Level = Field(default=Level.DEBUG, description="Most verbose level recorded")
    strategy: Literal["adhoc", "prepared"] = Field(default="prepared", description="Insert strategy")
    schema_variant: Literal["logs_v0", "logs"] = Field(default="logs_v0", description="Table layout")
    separator: str = Field(default=".", description="Path segment separator")

    @field_validator("max_level", mode="before")
    def validate_max_level(cls, v: object) -> object:
        """Parse the level label (WARNING, CRITICAL and FATAL aliases accepted)."""
        if isinstance(v, str):
            try:
                return Level.parse(v)
            except ValueError as exc:
                raise ValueError(f"LOGSINK_MAX_LEVEL is invalid: {exc}") from exc
        return v

    @field_validator("allow_list", "deny_list")
    def validate_prefixes(cls, v: list[str]) -> list[str]:
        """Reject blank prefixes."""
        if any(not item.strip() for item in v):
            raise ValueError("Path prefixes must be non-empty.")
        return v


class Config(BaseModel):
    """Top-level application configuration."""

    logsink: LogSinkConfig = Field(default_factory=LogSinkConfig, description="Log sink configuration")


def load_config() -> Config:
    """Load application configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when a value is invalid.
    """
    # Load variables from `.env` into the process environment (without overriding
    # already-set env vars).
    dotenv.load_dotenv()

    logsink = LogSinkConfig(
        db_path=_get_env_str("LOGSINK_DB_PATH", "logs.duckdb"),
        backend=_get_env_str("LOGSINK_BACKEND", "duckdb").lower(),
        allow_list=_get_env_list("LOGSINK_ALLOW"),
        deny_list=_get_env_list("LOGSINK_DENY"),
        max_level=_get_env_str("LOGSINK_MAX_LEVEL", "DEBUG"),
        strategy=_get_env_str("LOGSINK_STRATEGY", "prepared").lower(),
        schema_variant=_get_env_str("LOGSINK_SCHEMA", "logs_v0"),
        separator=_get_env_str("LOGSINK_SEPARATOR", "."),
    )
    return Config(logsink=logsink)
