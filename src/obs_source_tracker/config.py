"""Runtime configuration.

Defaults can be overridden from the environment (OBS_TRACKER_* variables)
and then from CLI options.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "OBS_TRACKER_"


def default_db_path() -> Path:
    """Default location of the aggregation database."""
    return Path.home() / ".obs-source-tracker" / "obs_tracker.db"


@dataclass
class TrackerConfig:
    """Configuration for the OBS connection and the aggregation store."""

    # OBS WebSocket endpoint
    obs_host: str = "127.0.0.1"
    obs_port: int = 4455
    rpc_version: int = 1

    # Timing (seconds)
    reconnect_delay: float = 5.0
    request_timeout: float = 3.0
    poll_interval: float = 2.0

    # Storage
    db_path: Path = field(default_factory=default_db_path)

    @property
    def obs_url(self) -> str:
        """WebSocket URL of the OBS server."""
        return f"ws://{self.obs_host}:{self.obs_port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TrackerConfig:
        """Build a config from OBS_TRACKER_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        config = cls()

        if host := env.get(f"{ENV_PREFIX}OBS_HOST"):
            config.obs_host = host
        if db_path := env.get(f"{ENV_PREFIX}DB_PATH"):
            config.db_path = Path(db_path).expanduser()

        config.obs_port = _read_number(env, "OBS_PORT", int, config.obs_port)
        config.reconnect_delay = _read_number(
            env, "RECONNECT_DELAY", float, config.reconnect_delay
        )
        config.request_timeout = _read_number(
            env, "REQUEST_TIMEOUT", float, config.request_timeout
        )
        config.poll_interval = _read_number(env, "POLL_INTERVAL", float, config.poll_interval)
        return config


def _read_number(env: Mapping[str, str], name: str, kind: type, default):
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw == "":
        return default
    try:
        value = kind(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name}: {raw!r}") from e
    if value < 0:
        raise ValueError(f"{ENV_PREFIX}{name} must not be negative: {raw!r}")
    return value
