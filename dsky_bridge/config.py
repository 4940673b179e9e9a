"""Configuration loader for dsky-bridge."""

from __future__ import annotations

import logging
from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from . import constants
from .core.models import ModeSelector

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class BridgeConfig:
    send_timeout_seconds: float = 1.0
    slot_modes: Dict[int, ModeSelector] = field(
        default_factory=lambda: {1: ModeSelector.AUTO, 2: ModeSelector.AUTO}
    )


@dataclass(slots=True)
class TelemetryConfig:
    export_dir: Path = constants.DEFAULT_EXPORT_DIR
    poll_interval_seconds: float = constants.DEFAULT_POLL_INTERVAL_SECONDS


@dataclass(slots=True)
class ReentryConfig:
    host: str = constants.DEFAULT_REENTRY_HOST
    port: int = constants.DEFAULT_REENTRY_PORT


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class HealthConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 0


@dataclass(slots=True)
class DskyBridgeConfig:
    bridge: BridgeConfig
    telemetry: TelemetryConfig
    reentry: ReentryConfig
    logging: LoggingConfig
    health: HealthConfig
    raw: ConfigParser
    path: Path


def _parse_mode(value: str, *, option: str) -> ModeSelector:
    try:
        return ModeSelector.parse(value)
    except ValueError:
        LOGGER.warning("Invalid %s %r; falling back to auto", option, value)
        return ModeSelector.AUTO


def load_config(path: Optional[Path] = None) -> DskyBridgeConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "bridge": {
                "send_timeout_seconds": "1.0",
                "slot1_mode": ModeSelector.AUTO.value,
                "slot2_mode": ModeSelector.AUTO.value,
            },
            "telemetry": {
                "export_dir": str(constants.DEFAULT_EXPORT_DIR),
                "poll_interval_seconds": str(constants.DEFAULT_POLL_INTERVAL_SECONDS),
            },
            "reentry": {
                "host": constants.DEFAULT_REENTRY_HOST,
                "port": str(constants.DEFAULT_REENTRY_PORT),
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_network": "false",
            },
            "health": {
                "enabled": "false",
                "host": "127.0.0.1",
                "port": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    try:
        send_timeout = parser.getfloat("bridge", "send_timeout_seconds", fallback=1.0)
    except ValueError:
        send_timeout = 1.0

    bridge = BridgeConfig(
        send_timeout_seconds=max(0.01, send_timeout),
        slot_modes={
            1: _parse_mode(parser.get("bridge", "slot1_mode"), option="slot1_mode"),
            2: _parse_mode(parser.get("bridge", "slot2_mode"), option="slot2_mode"),
        },
    )

    try:
        poll_interval = parser.getfloat(
            "telemetry",
            "poll_interval_seconds",
            fallback=constants.DEFAULT_POLL_INTERVAL_SECONDS,
        )
    except ValueError:
        poll_interval = constants.DEFAULT_POLL_INTERVAL_SECONDS

    telemetry = TelemetryConfig(
        export_dir=Path(parser.get("telemetry", "export_dir")).expanduser(),
        poll_interval_seconds=max(0.01, poll_interval),
    )

    try:
        reentry_port = parser.getint(
            "reentry", "port", fallback=constants.DEFAULT_REENTRY_PORT
        )
    except ValueError:
        reentry_port = 0
    if not 0 < reentry_port < 65536:
        LOGGER.warning(
            "Invalid reentry port %r; falling back to %d",
            parser.get("reentry", "port"),
            constants.DEFAULT_REENTRY_PORT,
        )
        reentry_port = constants.DEFAULT_REENTRY_PORT

    reentry = ReentryConfig(
        host=parser.get("reentry", "host", fallback=constants.DEFAULT_REENTRY_HOST),
        port=reentry_port,
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    health = HealthConfig(
        enabled=parser.getboolean("health", "enabled", fallback=False),
        host=parser.get("health", "host", fallback="127.0.0.1"),
        port=parser.getint("health", "port", fallback=0),
    )

    return DskyBridgeConfig(
        bridge=bridge,
        telemetry=telemetry,
        reentry=reentry,
        logging=logging_config,
        health=health,
        raw=parser,
        path=config_path,
    )
