"""WebSocket bridge serving DSKY state to up to two hardware replicas."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Set, Tuple, Union

from aiohttp import WSMsgType, web

from . import constants
from .core import ClientConnection, CommandSender, ModeSelector, Module, TelemetrySnapshots
from .events import BridgeEvent, BridgeEventListener, ClientConnected, ClientDisconnected
from .keypad import decode_key
from .projection import project_view_model
from .slots import SlotRegistry

LOGGER = logging.getLogger(__name__)


class WebSocketConnection:
    """Adapts an aiohttp WebSocket response to the bridge connection contract."""

    def __init__(self, ws: web.WebSocketResponse, address: str) -> None:
        self._ws = ws
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send_str(self, data: str) -> None:
        await self._ws.send_str(data)

    async def close(self) -> None:
        await self._ws.close()

    def __repr__(self) -> str:
        return f"WebSocketConnection({self._address!r})"


class BridgeServer:
    """Owns the listener, the slot table and the broadcast/keystroke pipelines.

    All slot, fingerprint and connection bookkeeping happens under a single
    lock. Network sends happen outside it on a stable copy of the slot table,
    so one slow or failing client never holds up the other slot.
    """

    def __init__(
        self,
        command_sender: CommandSender,
        *,
        initial_modes: Optional[Mapping[int, ModeSelector]] = None,
        send_timeout: float = 1.0,
    ) -> None:
        self._sender = command_sender
        self._registry: SlotRegistry[ClientConnection] = SlotRegistry(initial_modes)
        self._send_timeout = max(send_timeout, 0.01)
        self._lock = asyncio.Lock()
        self._connections: Set[ClientConnection] = set()
        self._snapshots = TelemetrySnapshots()
        self._listeners: List[BridgeEventListener] = []
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(
        self, host: str = constants.BRIDGE_HOST, port: int = constants.BRIDGE_PORT
    ) -> None:
        app = web.Application()
        app.router.add_get(constants.BRIDGE_PATH, self._handle_websocket)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()
        LOGGER.info(
            "WebSocket server listening on ws://%s:%s%s",
            host,
            port,
            constants.BRIDGE_PATH,
        )

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        async with self._lock:
            connections = list(self._connections)

        for connection in connections:
            with contextlib.suppress(Exception):
                await connection.close()

        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    @property
    def running(self) -> bool:
        return self._site is not None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def register_listener(self, listener: BridgeEventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unregister_listener(self, listener: BridgeEventListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    async def _emit(self, event: BridgeEvent) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOGGER.warning("Bridge listener failed for %r", event, exc_info=True)

    # ------------------------------------------------------------------
    # Connection events
    # ------------------------------------------------------------------
    async def on_connect(self, connection: ClientConnection) -> int:
        async with self._lock:
            slot = self._registry.assign(connection)
            self._connections.add(connection)
            initial: Optional[str] = None
            if self._snapshots.has_data:
                initial = self._render(slot, self._snapshots)

        LOGGER.info("Client connected from %s -> slot %d", connection.address, slot)
        await self._emit(ClientConnected(address=connection.address, slot=slot))

        if initial is not None:
            try:
                async with asyncio.timeout(self._send_timeout):
                    await connection.send_str(initial)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                LOGGER.warning(
                    "Error sending initial state to %s: %s", connection.address, exc
                )
            else:
                await self._remember(slot, connection, initial)

        return slot

    async def on_disconnect(self, connection: ClientConnection) -> Optional[int]:
        async with self._lock:
            if connection not in self._connections:
                return None
            self._connections.discard(connection)
            slot = self._registry.release(connection)

        LOGGER.info(
            "Client disconnected (%s) from slot %s",
            connection.address,
            slot if slot is not None else "-",
        )
        await self._emit(ClientDisconnected(address=connection.address, slot=slot))
        return slot

    async def on_message(
        self, connection: ClientConnection, message: Union[str, bytes]
    ) -> None:
        key = decode_key(message)
        if key is None:
            LOGGER.debug("Ignoring unrecognised keystroke %r", message)
            return

        async with self._lock:
            slot = self._registry.slot_of(connection)
            if slot is None:
                LOGGER.debug(
                    "Ignoring keystroke from unassigned client %s", connection.address
                )
                return
            module = self._registry.resolve(slot, self._snapshots)

        is_command_module = module is Module.COMMAND
        try:
            await self._sender.send_key(key, is_command_module)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning("Failed to send key %s from slot %d: %s", key.value, slot, exc)
            return

        LOGGER.info(
            "Key '%s' from slot %d -> %s",
            key.value,
            slot,
            "CMC" if is_command_module else "LGC",
        )

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------
    async def tick(self, snapshots: TelemetrySnapshots) -> int:
        """Push changed view models to every occupied slot.

        Returns the number of frames actually delivered.
        """

        pending: List[Tuple[int, ClientConnection, str]] = []
        stale: List[ClientConnection] = []
        async with self._lock:
            self._snapshots = snapshots
            for slot, connection, fingerprint in self._registry.assigned():
                if connection.closed:
                    stale.append(connection)
                    continue
                payload = self._render(slot, snapshots)
                if payload == fingerprint:
                    continue
                pending.append((slot, connection, payload))

        # Sockets closed underneath us never reached the disconnect path.
        for connection in stale:
            await self.on_disconnect(connection)

        if not pending:
            return 0

        results = await asyncio.gather(
            *(self._deliver(slot, connection, payload) for slot, connection, payload in pending)
        )
        return sum(1 for delivered in results if delivered)

    def _render(self, slot: int, snapshots: TelemetrySnapshots) -> str:
        module = self._registry.resolve(slot, snapshots)
        return project_view_model(snapshots, module).to_json()

    async def _deliver(
        self, slot: int, connection: ClientConnection, payload: str
    ) -> bool:
        try:
            async with asyncio.timeout(self._send_timeout):
                await connection.send_str(payload)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning(
                "Error sending state to client in slot %d (%s): %r",
                slot,
                connection.address,
                exc,
            )
            await self._drop(connection)
            return False

        await self._remember(slot, connection, payload)
        return True

    async def _remember(
        self, slot: int, connection: ClientConnection, payload: str
    ) -> None:
        async with self._lock:
            # The slot may have been handed to another client mid-send.
            if self._registry.connection_of(slot) is connection:
                self._registry.set_fingerprint(slot, payload)

    async def _drop(self, connection: ClientConnection) -> None:
        await self.on_disconnect(connection)
        self._spawn(self._close_quietly(connection))

    @staticmethod
    async def _close_quietly(connection: ClientConnection) -> None:
        with contextlib.suppress(Exception):
            await connection.close()

    # ------------------------------------------------------------------
    # Slot control
    # ------------------------------------------------------------------
    async def set_mode(self, slot: int, mode: ModeSelector) -> None:
        async with self._lock:
            self._registry.set_mode(slot, mode)
        LOGGER.info("Slot %d mode set to %s", slot, ModeSelector(mode).value)

    async def mode_of(self, slot: int) -> ModeSelector:
        async with self._lock:
            return self._registry.mode_of(slot)

    async def slots(self) -> List[Dict[str, Any]]:
        async with self._lock:
            return self._registry.describe()

    # ------------------------------------------------------------------
    # WebSocket handling
    # ------------------------------------------------------------------
    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        connection = WebSocketConnection(ws, request.remote or "unknown")
        await self.on_connect(connection)

        try:
            async for msg in ws:
                if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                    self._spawn(self.on_message(connection, msg.data))
                elif msg.type == WSMsgType.ERROR:
                    LOGGER.warning(
                        "WebSocket error from %s: %s", connection.address, ws.exception()
                    )
                    break
        finally:
            await self.on_disconnect(connection)

        return ws
