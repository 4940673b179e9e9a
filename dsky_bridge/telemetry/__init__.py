"""Telemetry source: export-file reader, latest-value store and poller."""

from .polling import TelemetryPoller
from .reader import ExportFileReader
from .store import TelemetryStore

__all__ = ["ExportFileReader", "TelemetryPoller", "TelemetryStore"]
