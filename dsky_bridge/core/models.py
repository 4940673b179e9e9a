"""Domain models for DSKY telemetry, slot modes and the broadcast view model."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

_ValuesT = TypeVar("_ValuesT", bound="DskyValues")


class Module(str, Enum):
    """The two guidance computers exported by the simulator."""

    COMMAND = "cm"
    LUNAR = "lm"


class ModeSelector(str, Enum):
    """Per-slot choice of which module a DSKY displays and drives."""

    FORCE_CM = "cm"
    FORCE_LM = "lm"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: str) -> "ModeSelector":
        normalized = (value or "").strip().lower()
        aliases = {"cmc": "cm", "agc": "cm", "lmc": "lm", "lgc": "lm"}
        return cls(aliases.get(normalized, normalized))


@dataclass(frozen=True, slots=True)
class DskyValues:
    """Fields shared by both exported DSKY states."""

    program_d1: str = ""
    program_d2: str = ""
    verb_d1: str = ""
    verb_d2: str = ""
    noun_d1: str = ""
    noun_d2: str = ""

    register1_sign: str = ""
    register1_d1: str = ""
    register1_d2: str = ""
    register1_d3: str = ""
    register1_d4: str = ""
    register1_d5: str = ""

    register2_sign: str = ""
    register2_d1: str = ""
    register2_d2: str = ""
    register2_d3: str = ""
    register2_d4: str = ""
    register2_d5: str = ""

    register3_sign: str = ""
    register3_d1: str = ""
    register3_d2: str = ""
    register3_d3: str = ""
    register3_d4: str = ""
    register3_d5: str = ""

    illuminate_comp_light: bool = False
    illuminate_uplink_acty: int = 0
    illuminate_no_att: int = 0
    illuminate_stby: int = 0
    illuminate_key_rel: int = 0
    illuminate_opr_err: int = 0
    illuminate_temp: int = 0
    illuminate_gimbal_lock: int = 0
    illuminate_prog: int = 0
    illuminate_restart: int = 0
    illuminate_tracker: int = 0

    brightness_numerics: float = 0.0
    brightness_integral: float = 0.0

    hide_verb: bool = False
    hide_noun: bool = False

    @classmethod
    def from_export(cls: Type[_ValuesT], payload: Mapping[str, Any]) -> _ValuesT:
        """Build a snapshot from an export document.

        Keys are matched case-insensitively against the PascalCase export names
        (``ProgramD1``, ``IlluminateCompLight``, ``IsInCM`` ...). Missing keys keep
        the field default. Raises ``ValueError`` when a value cannot be coerced.
        """

        lookup = {str(key).lower(): value for key, value in payload.items()}
        values: Dict[str, Any] = {}
        for item in fields(cls):
            raw = lookup.get(item.name.replace("_", ""))
            if raw is None:
                continue
            values[item.name] = _coerce(raw, item.default)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class CommandModuleValues(DskyValues):
    """Module A: the command module guidance computer."""

    is_in_cm: bool = False


@dataclass(frozen=True, slots=True)
class LunarModuleValues(DskyValues):
    """Module B: the lunar module guidance computer."""

    illuminate_alt: int = 0
    illuminate_vel: int = 0


@dataclass(frozen=True, slots=True)
class TelemetrySnapshots:
    """Latest known state of both modules; ``None`` until first read."""

    command: Optional[CommandModuleValues] = None
    lunar: Optional[LunarModuleValues] = None

    @property
    def has_data(self) -> bool:
        return self.command is not None or self.lunar is not None

    def for_module(self, module: Module) -> Optional[DskyValues]:
        if module is Module.COMMAND:
            return self.command
        return self.lunar


_WIRE_OVERRIDES = {"is_in_cm": "IsInCM", "is_in_lm": "IsInLM"}


@dataclass(frozen=True, slots=True)
class ViewModel:
    """Flat record broadcast to one hardware DSKY."""

    is_in_cm: bool
    is_in_lm: bool

    program_d1: str
    program_d2: str
    verb_d1: str
    verb_d2: str
    noun_d1: str
    noun_d2: str

    register1_sign: str
    register1_d1: str
    register1_d2: str
    register1_d3: str
    register1_d4: str
    register1_d5: str

    register2_sign: str
    register2_d1: str
    register2_d2: str
    register2_d3: str
    register2_d4: str
    register2_d5: str

    register3_sign: str
    register3_d1: str
    register3_d2: str
    register3_d3: str
    register3_d4: str
    register3_d5: str

    illuminate_comp_light: bool
    illuminate_uplink_acty: int
    illuminate_no_att: int
    illuminate_stby: int
    illuminate_key_rel: int
    illuminate_opr_err: int
    illuminate_temp: int
    illuminate_gimbal_lock: int
    illuminate_prog: int
    illuminate_restart: int
    illuminate_tracker: int
    illuminate_no_dap: int
    illuminate_prio_disp: int
    illuminate_alt: int
    illuminate_vel: int

    status_brightness: int
    display_brightness: int
    keyboard_brightness: int

    standby: bool

    def to_payload(self) -> Dict[str, Any]:
        """Return the wire representation; key order is part of the contract."""

        return {
            _wire_name(item.name): getattr(self, item.name) for item in fields(self)
        }

    def to_json(self) -> str:
        """Compact JSON form; also used as the per-slot change fingerprint."""

        return json.dumps(self.to_payload(), separators=(",", ":"))


def _wire_name(name: str) -> str:
    override = _WIRE_OVERRIDES.get(name)
    if override is not None:
        return override
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


def _coerce(raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, str):
            return raw.strip().lower() in {"1", "true", "yes", "on"}
        return bool(raw)
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)
