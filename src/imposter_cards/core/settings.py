"""Application settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

ENV_PREFIX = "IMPOSTER_"


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def _env_flag(name: str, *, default: bool = False) -> bool:
    return _env(name, "true" if default else "false").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AppSettings:
    """Application configuration settings.

    Attributes:
        debug: Enable debug mode and debug-level logs.
        json_logs: Render logs as JSON.
        room_max_age_seconds: Rooms older than this are swept.
        cleanup_interval_seconds: Time between two sweeps.
        ws_path: Path of the WebSocket endpoint.
        api_path: Prefix of the REST endpoints.
    """

    debug: bool = False
    json_logs: bool = False
    room_max_age_seconds: int = 3600
    cleanup_interval_seconds: int = 1800
    ws_path: str = "/ws"
    api_path: str = "/api"

    @property
    def room_max_age(self) -> timedelta:
        """Maximum room age as a timedelta."""
        return timedelta(seconds=self.room_max_age_seconds)

    @classmethod
    def from_env(cls) -> AppSettings:
        """Create settings from environment variables.

        Environment variables:
            IMPOSTER_DEBUG: Set to "true" for debug mode.
            IMPOSTER_JSON_LOGS: Set to "true" for JSON log output.
            IMPOSTER_ROOM_MAX_AGE_SECONDS: Room lifetime (default 3600).
            IMPOSTER_CLEANUP_INTERVAL_SECONDS: Sweep interval (default 1800).
            IMPOSTER_WS_PATH: WebSocket path (default "/ws").
            IMPOSTER_API_PATH: REST prefix (default "/api").

        Returns:
            AppSettings configured from environment.
        """
        return cls(
            debug=_env_flag("DEBUG"),
            json_logs=_env_flag("JSON_LOGS"),
            room_max_age_seconds=int(_env("ROOM_MAX_AGE_SECONDS", "3600")),
            cleanup_interval_seconds=int(_env("CLEANUP_INTERVAL_SECONDS", "1800")),
            ws_path=_env("WS_PATH", "/ws"),
            api_path=_env("API_PATH", "/api"),
        )
