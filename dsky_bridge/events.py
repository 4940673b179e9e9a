"""Notifications emitted by the bridge for the host application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union


@dataclass(frozen=True, slots=True)
class ClientConnected:
    address: str
    slot: int


@dataclass(frozen=True, slots=True)
class ClientDisconnected:
    """A hardware client went away.

    ``slot`` is ``None`` when the connection had already been displaced from
    its slot by a newer client.
    """

    address: str
    slot: Optional[int]


BridgeEvent = Union[ClientConnected, ClientDisconnected]
BridgeEventListener = Callable[[BridgeEvent], Awaitable[None] | None]
