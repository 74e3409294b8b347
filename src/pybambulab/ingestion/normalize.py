"""Value normalizers.

Pure functions turning raw telemetry fields into presentation units. All of
them are total: absent or unparseable input returns ``None`` (the caller
then leaves the stored value alone) and unknown codes pass through as
``"unknown(<code>)"``.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

FAN_NOTCHES = 15

STAGE_LABELS: dict[int, str] = {
    -1: "idle",
    0: "printing",
    1: "auto bed leveling",
    2: "heatbed preheating",
    3: "sweeping XY mech mode",
    4: "changing filament",
    5: "M400 pause",
    6: "paused due to filament runout",
    7: "heating hotend",
    8: "calibrating extrusion",
    9: "scanning bed surface",
    10: "inspecting first layer",
    11: "identifying build plate type",
    12: "calibrating micro lidar",
    13: "homing toolhead",
    14: "cleaning nozzle tip",
    15: "checking extruder temperature",
    16: "paused by the user",
    17: "paused due to front cover falling",
    18: "calibrating micro lidar",
    19: "calibrating extrusion flow",
    20: "paused due to nozzle temperature malfunction",
    21: "paused due to heat bed temperature malfunction",
    22: "unloading filament",
    23: "paused due to skipped step",
    24: "loading filament",
    25: "calibrating motor noise",
    26: "paused due to AMS lost",
    27: "paused due to low heatbreak fan speed",
    28: "paused due to chamber temperature control error",
    29: "cooling chamber",
    30: "paused by user G-code",
    31: "motor noise showoff",
    32: "paused due to nozzle filament covered",
    33: "paused due to cutter error",
    34: "paused due to first layer error",
    35: "paused due to nozzle clog",
    255: "idle",
}

SPEED_PROFILES: dict[int, str] = {
    1: "silent",
    2: "standard",
    3: "sport",
    4: "ludicrous",
}


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def fan_speed(raw: Any) -> int | None:
    """Convert a fan duty in notches (0-15, often sent as a string) to percent."""
    notches = safe_float(raw)
    if notches is None:
        return None
    percent = round(notches * 100 / FAN_NOTCHES)
    return max(0, min(100, percent))


def stage_parser(code: Any) -> str | None:
    stage = safe_int(code)
    if stage is None:
        return None
    return STAGE_LABELS.get(stage, f"unknown({stage})")


def speed_profile(level: Any) -> str | None:
    profile = safe_int(level)
    if profile is None:
        return None
    return SPEED_PROFILES.get(profile, f"unknown({profile})")


def remaining_time(minutes: Any) -> int | None:
    """Remaining print time in whole minutes, negatives clamped to zero."""
    parsed = safe_int(minutes)
    if parsed is None:
        return None
    return max(0, parsed)


def format_remaining_time(minutes: Any) -> str | None:
    """Human readable remaining time, e.g. ``"1h 05m"``."""
    parsed = remaining_time(minutes)
    if parsed is None:
        return None
    hours, mins = divmod(parsed, 60)
    if hours:
        return f"{hours}h {mins:02d}m"
    return f"{mins}m"


#: Telemetry keys whose stored value is computed rather than copied.
NORMALIZERS: dict[str, Callable[[Any], Any]] = {
    "cooling_fan_speed": fan_speed,
    "heatbreak_fan_speed": fan_speed,
    "big_fan1_speed": fan_speed,
    "big_fan2_speed": fan_speed,
    "stg_cur": stage_parser,
    "spd_lvl": speed_profile,
    "mc_remaining_time": remaining_time,
}
