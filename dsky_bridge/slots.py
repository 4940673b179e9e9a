"""Slot registry mapping hardware connections to logical DSKY positions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar

from .core.models import ModeSelector, Module, TelemetrySnapshots

LOGGER = logging.getLogger(__name__)

SLOT_NUMBERS: Tuple[int, ...] = (1, 2)

ConnectionT = TypeVar("ConnectionT")


@dataclass
class Slot(Generic[ConnectionT]):
    """One logical DSKY position.

    The mode survives disconnects; the fingerprint is the last payload sent to
    the current connection and is reset whenever the connection changes.
    """

    number: int
    mode: ModeSelector = ModeSelector.AUTO
    connection: Optional[ConnectionT] = None
    fingerprint: Optional[str] = None

    @property
    def occupied(self) -> bool:
        return self.connection is not None


def resolve_mode(mode: ModeSelector, snapshots: TelemetrySnapshots) -> Module:
    """Resolve a mode selector to a module using the current telemetry."""

    if mode is ModeSelector.FORCE_CM:
        return Module.COMMAND
    if mode is ModeSelector.FORCE_LM:
        return Module.LUNAR

    command = snapshots.command
    if command is None:
        return Module.COMMAND
    return Module.COMMAND if command.is_in_cm else Module.LUNAR


class SlotRegistry(Generic[ConnectionT]):
    """Tracks which connection owns slot 1 and slot 2.

    The registry is not synchronised; callers serialise access.
    """

    def __init__(
        self, initial_modes: Optional[Mapping[int, ModeSelector]] = None
    ) -> None:
        self._slots: Dict[int, Slot[ConnectionT]] = {}
        self._initial_modes = dict(initial_modes or {})
        # Connections displaced from slot 2 by a third client.
        self._aliases: Dict[ConnectionT, int] = {}

    def _slot(self, number: int) -> Slot[ConnectionT]:
        if number not in SLOT_NUMBERS:
            raise ValueError(f"Unknown slot {number!r}; expected one of {SLOT_NUMBERS}")
        slot = self._slots.get(number)
        if slot is None:
            slot = Slot(
                number=number,
                mode=self._initial_modes.get(number, ModeSelector.AUTO),
            )
            self._slots[number] = slot
        return slot

    def assign(self, connection: ConnectionT) -> int:
        existing = self.slot_of(connection)
        if existing is not None and connection not in self._aliases:
            return existing

        for number in SLOT_NUMBERS:
            slot = self._slots.get(number)
            if slot is None or not slot.occupied:
                slot = self._slot(number)
                break
        else:
            slot = self._slot(SLOT_NUMBERS[-1])
            evicted = slot.connection
            if evicted is not None:
                self._aliases[evicted] = slot.number
                LOGGER.warning(
                    "Both slots occupied; new connection replaces slot %d", slot.number
                )

        self._aliases.pop(connection, None)
        slot.connection = connection
        slot.fingerprint = None
        return slot.number

    def release(self, connection: ConnectionT) -> Optional[int]:
        if self._aliases.pop(connection, None) is not None:
            return None

        for slot in self._slots.values():
            if slot.connection is connection:
                slot.connection = None
                slot.fingerprint = None
                return slot.number
        return None

    def slot_of(self, connection: ConnectionT) -> Optional[int]:
        for slot in self._slots.values():
            if slot.connection is connection:
                return slot.number
        return self._aliases.get(connection)

    def connection_of(self, number: int) -> Optional[ConnectionT]:
        slot = self._slots.get(number)
        return slot.connection if slot is not None else None

    def mode_of(self, number: int) -> ModeSelector:
        return self._slot(number).mode

    def set_mode(self, number: int, mode: ModeSelector) -> None:
        self._slot(number).mode = ModeSelector(mode)

    def resolve(self, number: int, snapshots: TelemetrySnapshots) -> Module:
        return resolve_mode(self.mode_of(number), snapshots)

    def set_fingerprint(self, number: int, fingerprint: Optional[str]) -> None:
        self._slot(number).fingerprint = fingerprint

    def assigned(self) -> List[Tuple[int, ConnectionT, Optional[str]]]:
        """Stable copy of ``(slot, connection, fingerprint)`` for occupied slots."""

        return [
            (slot.number, slot.connection, slot.fingerprint)
            for slot in sorted(self._slots.values(), key=lambda item: item.number)
            if slot.connection is not None
        ]

    def describe(self) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        for number in SLOT_NUMBERS:
            slot = self._slots.get(number)
            connection = slot.connection if slot is not None else None
            entries.append(
                {
                    "slot": number,
                    "mode": self.mode_of(number).value,
                    "connected": connection is not None,
                    "address": getattr(connection, "address", None),
                }
            )
        return entries
