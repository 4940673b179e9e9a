"""Constants used across the dsky-bridge package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "dsky-bridge"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".dsky-bridge" / DEFAULT_CONFIG_FILENAME

# Hardware clients connect to ws://0.0.0.0:3000/; the firmware expects this endpoint.
BRIDGE_HOST = "0.0.0.0"
BRIDGE_PORT = 3000
BRIDGE_PATH = "/"

DEFAULT_REENTRY_HOST = "127.0.0.1"
DEFAULT_REENTRY_PORT = 8051

DEFAULT_EXPORT_DIR = (
    Path.home()
    / "AppData"
    / "LocalLow"
    / "Wilhelmsen Studios"
    / "ReEntry"
    / "Export"
    / "Apollo"
)
COMMAND_MODULE_EXPORT = "outputAGC.json"
LUNAR_MODULE_EXPORTS = ("outputLGC.json", "outputLM.json")

DEFAULT_POLL_INTERVAL_SECONDS = 0.1
