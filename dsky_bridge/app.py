"""Main application entry-point for dsky-bridge."""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Optional

from . import constants
from .adapters import UdpReentryCommandSender
from .config import DskyBridgeConfig, load_config
from .core import CommandSender, TelemetrySnapshots
from .events import BridgeEvent, ClientConnected
from .health import HealthReporter, HealthServer
from .logging import configure_logging
from .server import BridgeServer
from .telemetry import ExportFileReader, TelemetryPoller, TelemetryStore

LOGGER = logging.getLogger(__name__)


class AgentState(str, Enum):
    COLD_START = "cold_start"
    ACTIVE = "active"
    DEGRADED = "degraded"
    STOPPING = "stopping"


class DskyBridgeApp:
    """Coordinates startup and shutdown of the bridge and its collaborators.

    Owns the command sender, the WebSocket bridge, the export-file poller and
    the optional status endpoint. The command sender and the export reader can
    be injected for testing.
    """

    def __init__(
        self,
        config: Optional[DskyBridgeConfig] = None,
        *,
        command_sender: Optional[CommandSender] = None,
        reader: Optional[ExportFileReader] = None,
        bridge_host: str = constants.BRIDGE_HOST,
        bridge_port: int = constants.BRIDGE_PORT,
    ) -> None:
        self._config = config or load_config()
        self._sender: CommandSender = command_sender or UdpReentryCommandSender(
            self._config.reentry
        )
        self._reader = reader or ExportFileReader(self._config.telemetry.export_dir)
        self._store = TelemetryStore()
        self._bridge = BridgeServer(
            self._sender,
            initial_modes=self._config.bridge.slot_modes,
            send_timeout=self._config.bridge.send_timeout_seconds,
        )
        self._bridge_host = bridge_host
        self._bridge_port = bridge_port
        self._poller: Optional[TelemetryPoller] = None
        self._uplink_ready = False
        self._uplink_error: Optional[str] = None
        self._health = HealthReporter()
        self._health_server: Optional[HealthServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._state = AgentState.COLD_START

    @property
    def bridge(self) -> BridgeServer:
        return self._bridge

    @property
    def health(self) -> HealthReporter:
        return self._health

    @property
    def state(self) -> AgentState:
        return self._state

    async def run(self) -> None:
        """Run until :meth:`request_shutdown` is called or the task is cancelled."""

        self._shutdown_event = asyncio.Event()

        LOGGER.info("dsky-bridge starting with config: %s", self._config.path)
        started = await self._start_services()
        if not started:
            LOGGER.warning("Service startup incomplete; running in degraded mode")

        try:
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("dsky-bridge received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    @classmethod
    def start(cls, config: Optional[DskyBridgeConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("dsky-bridge received shutdown signal")

    async def _transition_state(
        self, state: AgentState, *, detail: Optional[str] = None
    ) -> None:
        previous = self._state
        self._state = state
        message_detail = detail or state.value
        LOGGER.info(
            "Agent state transition %s -> %s (%s)",
            previous.value,
            state.value,
            message_detail,
        )
        await self._health.set_agent_state(
            state.value,
            healthy=state == AgentState.ACTIVE,
            detail=message_detail,
        )

    async def _start_services(self) -> bool:
        await self._transition_state(AgentState.COLD_START, detail="initialising")
        await self._health.update("telemetry", False, "awaiting export files")

        uplink_ready = await self._start_sender()
        self._uplink_ready = uplink_ready

        try:
            await self._bridge.start(self._bridge_host, self._bridge_port)
        except OSError as exc:
            LOGGER.error("Failed to start WebSocket bridge: %s", exc)
            await self._health.update("bridge", False, str(exc))
            await self._transition_state(AgentState.DEGRADED, detail="bridge unavailable")
            return False

        self._bridge.register_listener(self._on_bridge_event)
        await self._health.update("bridge", True, self._bridge_detail())

        self._poller = TelemetryPoller(
            self._reader,
            self._store,
            on_update=self._on_telemetry,
            interval=self._config.telemetry.poll_interval_seconds,
            on_status=self._on_reader_status,
        )
        self._poller.start()

        await self._start_health_server()

        if uplink_ready:
            await self._transition_state(AgentState.ACTIVE, detail="bridge ready")
        else:
            await self._transition_state(
                AgentState.DEGRADED, detail="command uplink unavailable"
            )
        return uplink_ready

    async def _start_sender(self) -> bool:
        starter = getattr(self._sender, "start", None)
        if starter is None:
            await self._health.update("uplink", True, None)
            return True

        try:
            result = starter()
            if inspect.isawaitable(result):
                await result
        except OSError as exc:
            LOGGER.error("Failed to open ReEntry command uplink: %s", exc)
            await self._health.update("uplink", False, str(exc))
            return False

        await self._health.update("uplink", True, None)
        return True

    async def _on_telemetry(self, snapshots: TelemetrySnapshots) -> None:
        await self._bridge.tick(snapshots)
        await self._refresh_uplink()

    async def _refresh_uplink(self) -> None:
        if not self._uplink_ready:
            return

        error = getattr(self._sender, "last_error", None)
        if error == self._uplink_error:
            return

        self._uplink_error = error
        await self._health.update("uplink", error is None, error)

    async def _start_health_server(self) -> None:
        health = self._config.health
        if not health.enabled or health.port <= 0:
            return

        server = HealthServer(self._health, health.host, health.port, bridge=self._bridge)
        try:
            await server.start()
        except OSError as exc:
            LOGGER.error("Failed to start health endpoint: %s", exc)
            await self._health.update("health-endpoint", False, str(exc))
        else:
            self._health_server = server
            await self._health.update("health-endpoint", True, None)

    def _bridge_detail(self) -> str:
        return f"clients={self._bridge.connection_count}"

    async def _on_bridge_event(self, event: BridgeEvent) -> None:
        if isinstance(event, ClientConnected):
            LOGGER.info("DSKY %d online (%s)", event.slot, event.address)
        else:
            LOGGER.info(
                "DSKY %s offline (%s)",
                event.slot if event.slot is not None else "-",
                event.address,
            )
        await self._health.update("bridge", True, self._bridge_detail())

    async def _on_reader_status(self, running: bool) -> None:
        await self._health.update(
            "telemetry",
            running,
            None if running else "export files missing or unreadable",
        )

    async def _stop_services(self) -> None:
        await self._transition_state(AgentState.STOPPING, detail="shutdown requested")

        if self._poller is not None:
            await self._poller.stop()
            self._poller = None

        self._bridge.unregister_listener(self._on_bridge_event)
        await self._bridge.stop()
        await self._health.update("bridge", False, "shutdown")

        stopper: Any = getattr(self._sender, "stop", None)
        if stopper is not None:
            result = stopper()
            if inspect.isawaitable(result):
                await result

        if self._health_server is not None:
            await self._health_server.stop()
            self._health_server = None
            await self._health.update("health-endpoint", False, "shutdown")

        if self._shutdown_event is not None:
            self._shutdown_event.set()
