"""Tests for slot assignment and mode resolution."""

import pytest

from dsky_bridge.core import (
    CommandModuleValues,
    LunarModuleValues,
    ModeSelector,
    Module,
    TelemetrySnapshots,
)
from dsky_bridge.slots import SlotRegistry, resolve_mode


class Conn:
    def __init__(self, address: str) -> None:
        self.address = address


def test_first_two_connections_fill_slots_in_order():
    registry = SlotRegistry()
    first, second = Conn("10.0.0.1"), Conn("10.0.0.2")

    assert registry.assign(first) == 1
    assert registry.assign(second) == 2
    assert [slot for slot, _, _ in registry.assigned()] == [1, 2]


def test_third_connection_replaces_slot_two():
    registry = SlotRegistry()
    first, second, third = Conn("a"), Conn("b"), Conn("c")
    registry.assign(first)
    registry.assign(second)

    assert registry.assign(third) == 2

    assigned = registry.assigned()
    assert [slot for slot, _, _ in assigned] == [1, 2]
    assert registry.connection_of(2) is third
    # The displaced client still maps to slot 2 for keystrokes.
    assert registry.slot_of(second) == 2


def test_release_of_evicted_connection_keeps_slot_two():
    registry = SlotRegistry()
    first, second, third = Conn("a"), Conn("b"), Conn("c")
    registry.assign(first)
    registry.assign(second)
    registry.assign(third)

    assert registry.release(second) is None
    assert registry.connection_of(2) is third
    assert registry.slot_of(second) is None


def test_release_keeps_mode_and_frees_slot():
    registry = SlotRegistry()
    first, second = Conn("a"), Conn("b")
    registry.assign(first)
    registry.assign(second)
    registry.set_mode(1, ModeSelector.FORCE_LM)
    registry.set_mode(2, ModeSelector.FORCE_CM)

    assert registry.release(first) == 1

    assert registry.connection_of(1) is None
    assert registry.connection_of(2) is second
    assert registry.mode_of(1) is ModeSelector.FORCE_LM
    assert registry.mode_of(2) is ModeSelector.FORCE_CM

    fresh = Conn("c")
    assert registry.assign(fresh) == 1
    assert registry.mode_of(1) is ModeSelector.FORCE_LM
    assert registry.connection_of(2) is second


def test_release_unknown_connection_returns_none():
    registry = SlotRegistry()
    assert registry.release(Conn("ghost")) is None


def test_new_connection_starts_with_empty_fingerprint():
    registry = SlotRegistry()
    first = Conn("a")
    registry.assign(first)
    registry.set_fingerprint(1, "{}")

    registry.release(first)
    registry.assign(Conn("b"))

    assert registry.assigned()[0][2] is None


def test_initial_modes_are_applied_lazily():
    registry = SlotRegistry({2: ModeSelector.FORCE_LM})

    assert registry.mode_of(1) is ModeSelector.AUTO
    assert registry.mode_of(2) is ModeSelector.FORCE_LM


@pytest.mark.parametrize("slot", [0, 3, -1])
def test_invalid_slot_numbers_are_rejected(slot):
    registry = SlotRegistry()
    with pytest.raises(ValueError):
        registry.set_mode(slot, ModeSelector.AUTO)


def test_forced_modes_ignore_telemetry():
    snapshots = TelemetrySnapshots(command=CommandModuleValues(is_in_cm=True))

    assert resolve_mode(ModeSelector.FORCE_LM, snapshots) is Module.LUNAR
    assert resolve_mode(ModeSelector.FORCE_CM, TelemetrySnapshots()) is Module.COMMAND


def test_auto_mode_defaults_to_command_without_data():
    assert resolve_mode(ModeSelector.AUTO, TelemetrySnapshots()) is Module.COMMAND
    only_lunar = TelemetrySnapshots(lunar=LunarModuleValues())
    assert resolve_mode(ModeSelector.AUTO, only_lunar) is Module.COMMAND


def test_auto_mode_is_evaluated_on_every_call():
    registry = SlotRegistry()
    registry.assign(Conn("a"))

    in_cm = TelemetrySnapshots(command=CommandModuleValues(is_in_cm=True))
    in_lm = TelemetrySnapshots(command=CommandModuleValues(is_in_cm=False))

    assert registry.resolve(1, in_cm) is Module.COMMAND
    assert registry.resolve(1, in_lm) is Module.LUNAR
    assert registry.resolve(1, in_cm) is Module.COMMAND


def test_describe_lists_both_slots():
    registry = SlotRegistry()
    registry.assign(Conn("192.168.1.20"))

    entries = registry.describe()

    assert entries == [
        {"slot": 1, "mode": "auto", "connected": True, "address": "192.168.1.20"},
        {"slot": 2, "mode": "auto", "connected": False, "address": None},
    ]
