"""
Configuration for boardsync clients.

All settings come from environment variables prefixed BOARDSYNC_ (or are
passed explicitly). There are no config files.

Invariants:
    - All settings have sensible defaults for local development
    - presence_window_seconds >= heartbeat_seconds
    - Secrets are never logged

How to change safely:
    - Add new settings with defaults that keep existing deployments working
    - Document each new setting's environment variable in the field description
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class LogFormat(str, Enum):
    """Supported log output formats."""

    JSON = "json"
    TEXT = "text"


class SyncSettings(BaseSettings):
    """Client configuration.

    Attributes:
        workspace_id: Shared workspace (one remote document per workspace)
        client_id: This client's identity; derived from the identity relay if unset
        cache_path: SQLite file for the local cache
        debounce_seconds: Quiet period before a local change is written remotely
        heartbeat_seconds: Presence heartbeat interval
        presence_window_seconds: Max heartbeat age to count a client as online
        presence_enabled: Whether to run the presence tracker
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    workspace_id: str = Field(default="default", min_length=1)
    client_id: Optional[str] = Field(default=None)
    cache_path: str = Field(default="~/.boardsync/cache.db")

    debounce_seconds: float = Field(default=0.5, ge=0)
    heartbeat_seconds: float = Field(default=20.0, gt=0)
    presence_window_seconds: float = Field(
        default=60.0,
        gt=0,
        description="BOARDSYNC_PRESENCE_WINDOW_SECONDS; tune together with heartbeat_seconds",
    )
    presence_enabled: bool = Field(default=True)

    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default=LogFormat.JSON)

    model_config = {"env_prefix": "BOARDSYNC_"}

    @model_validator(mode="after")
    def _check_presence_window(self) -> SyncSettings:
        if self.presence_window_seconds < self.heartbeat_seconds:
            raise ValueError(
                "BOARDSYNC_PRESENCE_WINDOW_SECONDS must be >= BOARDSYNC_HEARTBEAT_SECONDS"
            )
        return self

    def log_config(self) -> None:
        """Log effective configuration."""
        logger.info(
            "Sync configuration loaded",
            extra={
                "workspace_id": self.workspace_id,
                "client_id": self.client_id,
                "cache_path": self.cache_path,
                "debounce_seconds": self.debounce_seconds,
                "heartbeat_seconds": self.heartbeat_seconds,
                "presence_window_seconds": self.presence_window_seconds,
                "presence_enabled": self.presence_enabled,
                "log_level": self.log_level,
            },
        )
