from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from fleetreplay.services.playback.data_source import DEFAULT_HTTP_TIMEOUT_S


def _optional_int_env(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


@dataclass(frozen=True, slots=True)
class PlaybackServiceConfig:
    config_path: str = field(default_factory=lambda: os.getenv("FLEETREPLAY_CONFIG", "fleetreplay.yaml"))
    interval_ms: Optional[int] = field(default_factory=lambda: _optional_int_env("FLEETREPLAY_INTERVAL_MS"))
    http_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("FLEETREPLAY_HTTP_TIMEOUT_SEC", str(DEFAULT_HTTP_TIMEOUT_S)))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_config_path: str = field(default_factory=lambda: os.getenv("LOG_CFG", "logging.yaml"))
