"""Protocol definitions for bridge collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..keypad import AgcKey


class CommandSender(Protocol):
    """Outbound channel delivering DSKY key presses to the simulator."""

    async def send_key(self, key: "AgcKey", is_command_module: bool) -> None:
        """Transmit a key press to the command (True) or lunar (False) computer.

        Delivery is best-effort; implementations may raise on transport failure.
        """
        ...


class ClientConnection(Protocol):
    """A live hardware DSKY connection as seen by the bridge."""

    @property
    def address(self) -> str:
        """Remote address used in notifications and logs."""
        ...

    @property
    def closed(self) -> bool:
        ...

    async def send_str(self, data: str) -> None:
        """Send one text frame; raises on transport failure."""
        ...

    async def close(self) -> None:
        ...
