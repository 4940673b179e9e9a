"""Periodic poller feeding export-file telemetry into the bridge.

The simulator rewrites its export files continuously. The poller reads both
on a fixed interval, keeps the last good value per module and hands the
current pair to the bridge on every cycle; the bridge's per-slot change
suppression makes redundant cycles free on the wire.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Awaitable, Callable, Optional

from ..core.models import TelemetrySnapshots
from .reader import ExportFileReader
from .store import TelemetryStore

LOGGER = logging.getLogger(__name__)

UpdateCallback = Callable[[TelemetrySnapshots], Awaitable[object] | object]
StatusCallback = Callable[[bool], Awaitable[None] | None]


class TelemetryPoller:
    """Runs the read/update/broadcast loop."""

    def __init__(
        self,
        reader: ExportFileReader,
        store: TelemetryStore,
        *,
        on_update: UpdateCallback,
        interval: float = 0.1,
        on_status: Optional[StatusCallback] = None,
    ) -> None:
        self._reader = reader
        self._store = store
        self._on_update = on_update
        self._on_status = on_status
        self._interval = max(interval, 0.01)
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self._reader_running: Optional[bool] = None

    @property
    def reader_running(self) -> bool:
        """True when the last cycle read both module files."""
        return bool(self._reader_running)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        LOGGER.info(
            "Polling ReEntry exports in %s every %.2fs",
            self._reader.export_dir,
            self._interval,
        )
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def poll_once(self) -> TelemetrySnapshots:
        command, lunar = await asyncio.gather(
            asyncio.to_thread(self._reader.read_command),
            asyncio.to_thread(self._reader.read_lunar),
        )
        snapshots = self._store.update(command=command, lunar=lunar)
        await self._report_status(command is not None and lunar is not None)

        result = self._on_update(snapshots)
        if inspect.isawaitable(result):
            await result
        return snapshots

    async def _report_status(self, running: bool) -> None:
        if running == self._reader_running:
            return

        self._reader_running = running
        LOGGER.info("Telemetry reader %s", "running" if running else "stopped")
        if self._on_status is None:
            return
        result = self._on_status(running)
        if inspect.isawaitable(result):
            await result

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Telemetry poll cycle failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                continue
