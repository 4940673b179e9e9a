"""Latest-value store for module telemetry."""

from __future__ import annotations

from typing import Optional

from ..core.models import CommandModuleValues, LunarModuleValues, TelemetrySnapshots


class TelemetryStore:
    """Holds the most recent snapshot per module.

    A ``None`` update leaves the previous value in place, so a transient read
    failure never blanks the hardware displays.
    """

    def __init__(self) -> None:
        self._snapshots = TelemetrySnapshots()

    def update(
        self,
        *,
        command: Optional[CommandModuleValues] = None,
        lunar: Optional[LunarModuleValues] = None,
    ) -> TelemetrySnapshots:
        if command is None and lunar is None:
            return self._snapshots

        self._snapshots = TelemetrySnapshots(
            command=command if command is not None else self._snapshots.command,
            lunar=lunar if lunar is not None else self._snapshots.lunar,
        )
        return self._snapshots

    def snapshots(self) -> TelemetrySnapshots:
        return self._snapshots

    @property
    def has_data(self) -> bool:
        return self._snapshots.has_data
