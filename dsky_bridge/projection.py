"""Projection of simulator telemetry into the hardware view model."""

from __future__ import annotations

from typing import Optional

from .core.models import (
    DskyValues,
    LunarModuleValues,
    Module,
    TelemetrySnapshots,
    ViewModel,
)

BRIGHTNESS_MIN = 1
BRIGHTNESS_MAX = 127
STANDBY_BRIGHTNESS = 127

# Firmware contract: changing these requires a protocol version bump.
DISPLAY_BRIGHTNESS_DOMAIN = (0.2, 1.14117646)
KEYBOARD_BRIGHTNESS_DOMAIN = (0.0, 0.9411765)

_LIGHT_OFF = 0


def normalize_brightness(
    value: float,
    domain_min: float,
    domain_max: float,
    range_min: int = BRIGHTNESS_MIN,
    range_max: int = BRIGHTNESS_MAX,
) -> int:
    """Map ``value`` linearly from the source domain into an integer range.

    Out-of-domain inputs saturate at the range bounds. A degenerate domain
    (``domain_max <= domain_min``) always yields ``range_min``.
    """

    if domain_max <= domain_min:
        return range_min

    ratio = (value - domain_min) / (domain_max - domain_min)
    ratio = min(max(ratio, 0.0), 1.0)
    scaled = ratio * (range_max - range_min) + range_min
    return int(min(max(round(scaled), range_min), range_max))


def standby_view_model() -> ViewModel:
    """View model shown while no telemetry is available for a slot."""

    return ViewModel(
        is_in_cm=False,
        is_in_lm=False,
        program_d1="",
        program_d2="",
        verb_d1="",
        verb_d2="",
        noun_d1="",
        noun_d2="",
        register1_sign="",
        register1_d1="",
        register1_d2="",
        register1_d3="",
        register1_d4="",
        register1_d5="",
        register2_sign="",
        register2_d1="",
        register2_d2="",
        register2_d3="",
        register2_d4="",
        register2_d5="",
        register3_sign="",
        register3_d1="",
        register3_d2="",
        register3_d3="",
        register3_d4="",
        register3_d5="",
        illuminate_comp_light=False,
        illuminate_uplink_acty=_LIGHT_OFF,
        illuminate_no_att=_LIGHT_OFF,
        illuminate_stby=_LIGHT_OFF,
        illuminate_key_rel=_LIGHT_OFF,
        illuminate_opr_err=_LIGHT_OFF,
        illuminate_temp=_LIGHT_OFF,
        illuminate_gimbal_lock=_LIGHT_OFF,
        illuminate_prog=_LIGHT_OFF,
        illuminate_restart=_LIGHT_OFF,
        illuminate_tracker=_LIGHT_OFF,
        illuminate_no_dap=_LIGHT_OFF,
        illuminate_prio_disp=_LIGHT_OFF,
        illuminate_alt=_LIGHT_OFF,
        illuminate_vel=_LIGHT_OFF,
        status_brightness=STANDBY_BRIGHTNESS,
        display_brightness=STANDBY_BRIGHTNESS,
        keyboard_brightness=STANDBY_BRIGHTNESS,
        standby=True,
    )


def project(values: DskyValues, module: Module) -> ViewModel:
    """Project one module's snapshot, applying hide flags and brightness remap."""

    display = normalize_brightness(values.brightness_numerics, *DISPLAY_BRIGHTNESS_DOMAIN)
    keyboard = normalize_brightness(
        values.brightness_integral, *KEYBOARD_BRIGHTNESS_DOMAIN
    )

    if module is Module.LUNAR and isinstance(values, LunarModuleValues):
        illuminate_alt = values.illuminate_alt
        illuminate_vel = values.illuminate_vel
    else:
        illuminate_alt = _LIGHT_OFF
        illuminate_vel = _LIGHT_OFF

    return ViewModel(
        is_in_cm=module is Module.COMMAND,
        is_in_lm=module is Module.LUNAR,
        program_d1=values.program_d1,
        program_d2=values.program_d2,
        verb_d1="" if values.hide_verb else values.verb_d1,
        verb_d2="" if values.hide_verb else values.verb_d2,
        noun_d1="" if values.hide_noun else values.noun_d1,
        noun_d2="" if values.hide_noun else values.noun_d2,
        register1_sign=values.register1_sign,
        register1_d1=values.register1_d1,
        register1_d2=values.register1_d2,
        register1_d3=values.register1_d3,
        register1_d4=values.register1_d4,
        register1_d5=values.register1_d5,
        register2_sign=values.register2_sign,
        register2_d1=values.register2_d1,
        register2_d2=values.register2_d2,
        register2_d3=values.register2_d3,
        register2_d4=values.register2_d4,
        register2_d5=values.register2_d5,
        register3_sign=values.register3_sign,
        register3_d1=values.register3_d1,
        register3_d2=values.register3_d2,
        register3_d3=values.register3_d3,
        register3_d4=values.register3_d4,
        register3_d5=values.register3_d5,
        illuminate_comp_light=values.illuminate_comp_light,
        illuminate_uplink_acty=values.illuminate_uplink_acty,
        illuminate_no_att=values.illuminate_no_att,
        illuminate_stby=values.illuminate_stby,
        illuminate_key_rel=values.illuminate_key_rel,
        illuminate_opr_err=values.illuminate_opr_err,
        illuminate_temp=values.illuminate_temp,
        illuminate_gimbal_lock=values.illuminate_gimbal_lock,
        illuminate_prog=values.illuminate_prog,
        illuminate_restart=values.illuminate_restart,
        illuminate_tracker=values.illuminate_tracker,
        illuminate_no_dap=_LIGHT_OFF,
        illuminate_prio_disp=_LIGHT_OFF,
        illuminate_alt=illuminate_alt,
        illuminate_vel=illuminate_vel,
        status_brightness=display,
        display_brightness=display,
        keyboard_brightness=keyboard,
        standby=False,
    )


def project_view_model(snapshots: TelemetrySnapshots, module: Module) -> ViewModel:
    """Select module A, module B or the standby variant and project it."""

    values: Optional[DskyValues] = snapshots.for_module(module)
    if values is None:
        return standby_view_model()
    return project(values, module)
