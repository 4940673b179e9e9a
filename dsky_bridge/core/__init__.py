"""Core primitives for dsky-bridge."""

from .models import (
    CommandModuleValues,
    DskyValues,
    LunarModuleValues,
    ModeSelector,
    Module,
    TelemetrySnapshots,
    ViewModel,
)
from .protocols import ClientConnection, CommandSender

__all__ = [
    "ClientConnection",
    "CommandModuleValues",
    "CommandSender",
    "DskyValues",
    "LunarModuleValues",
    "ModeSelector",
    "Module",
    "TelemetrySnapshots",
    "ViewModel",
]
