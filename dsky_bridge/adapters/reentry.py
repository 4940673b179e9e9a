"""UDP adapter delivering DSKY key presses to the ReEntry simulator."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Callable, Optional

from ..config import ReentryConfig
from ..keypad import AgcKey

LOGGER = logging.getLogger(__name__)

DEFAULT_ERROR_HOLD_SECONDS = 5.0


class CommandSendError(RuntimeError):
    """Raised when a key press cannot be handed to the transport."""


class _ReentryProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: "UdpReentryCommandSender") -> None:
        self._owner = owner

    def error_received(self, exc: Exception) -> None:
        # ICMP port unreachable surfaces here when ReEntry is not listening.
        self._owner.record_error(exc)
        LOGGER.debug("ReEntry UDP error: %s", exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            LOGGER.debug("ReEntry UDP endpoint closed: %s", exc)


def encode_key(key: AgcKey, is_command_module: bool) -> bytes:
    payload = {"key": key.value, "target": "CMC" if is_command_module else "LGC"}
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class UdpReentryCommandSender:
    """Fire-and-forget datagram sender for the simulator's key input port.

    UDP gives no delivery receipt. The only outage signal is the ICMP
    "port unreachable" the kernel reports back on the connected socket, which
    asyncio routes to ``error_received``. An error is held for
    ``error_hold_seconds``; while key presses keep failing it keeps being
    refreshed, and once the simulator is listening again it ages out.
    """

    def __init__(
        self,
        config: ReentryConfig,
        *,
        error_hold_seconds: float = DEFAULT_ERROR_HOLD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._error_hold = max(error_hold_seconds, 0.0)
        self._clock = clock
        self._last_error: Optional[str] = None
        self._last_error_at: Optional[float] = None
        self._transport: Optional[asyncio.DatagramTransport] = None

    @property
    def started(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def last_error(self) -> Optional[str]:
        """Most recent transport error, or ``None`` once it has aged out."""

        if self._last_error_at is None:
            return None
        if self._clock() - self._last_error_at > self._error_hold:
            return None
        return self._last_error

    def record_error(self, exc: Exception) -> None:
        if self.last_error is None:
            LOGGER.warning(
                "ReEntry not reachable on udp://%s:%s: %s",
                self.config.host,
                self.config.port,
                exc,
            )
        self._last_error = str(exc)
        self._last_error_at = self._clock()

    async def start(self) -> None:
        if self.started:
            return

        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _ReentryProtocol(self),
            remote_addr=(self.config.host, self.config.port),
        )
        self._transport = transport
        self._last_error = None
        self._last_error_at = None
        LOGGER.info(
            "ReEntry command sender targeting udp://%s:%s",
            self.config.host,
            self.config.port,
        )

    async def stop(self) -> None:
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None

    async def send_key(self, key: AgcKey, is_command_module: bool) -> None:
        if not self.started:
            raise CommandSendError("ReEntry command sender is not started")

        assert self._transport is not None
        # Socket errors from sendto surface through error_received, not here.
        self._transport.sendto(encode_key(key, is_command_module))
