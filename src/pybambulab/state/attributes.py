"""Name/role inference table for telemetry keys.

The explorer looks up the last path segment of every node here. Keys that
are not listed get their type and role inferred from the JSON value.
"""

from __future__ import annotations

import dataclasses
from enum import StrEnum
from typing import Any

from pybambulab.state.objects import ObjectCommon


class ArrayPolicy(StrEnum):
    INDEXED = "indexed"
    SERIALIZED = "serialized"


@dataclasses.dataclass(frozen=True)
class StateAttribute:
    name: str
    role: str = "state"
    type: str | None = None
    unit: str | None = None
    write: bool = False
    array: ArrayPolicy | None = None


def _temperature(name: str) -> StateAttribute:
    return StateAttribute(name=name, role="value.temperature", type="number", unit="°C")


def _fan(name: str) -> StateAttribute:
    return StateAttribute(name=name, role="value.speed", type="number", unit="%")


STATE_ATTRIBUTES: dict[str, StateAttribute] = {
    # Temperatures
    "nozzle_temper": _temperature("Nozzle temperature"),
    "nozzle_target_temper": _temperature("Nozzle target temperature"),
    "bed_temper": _temperature("Bed temperature"),
    "bed_target_temper": _temperature("Bed target temperature"),
    "chamber_temper": _temperature("Chamber temperature"),
    "frame_temper": _temperature("Frame temperature"),
    # Fans (normalized to percent)
    "cooling_fan_speed": _fan("Part cooling fan"),
    "heatbreak_fan_speed": _fan("Heatbreak fan"),
    "big_fan1_speed": _fan("Auxiliary fan"),
    "big_fan2_speed": _fan("Chamber fan"),
    # Job progress
    "mc_percent": StateAttribute(name="Print progress", role="value", type="number", unit="%"),
    "mc_remaining_time": StateAttribute(name="Remaining time", role="value", type="number", unit="min"),
    "mc_print_stage": StateAttribute(name="Print stage", role="text"),
    "mc_print_line_number": StateAttribute(name="G-code line", role="value"),
    "layer_num": StateAttribute(name="Current layer", role="value", type="number"),
    "total_layer_num": StateAttribute(name="Total layers", role="value", type="number"),
    "gcode_state": StateAttribute(name="Print state", role="text", type="string"),
    "gcode_file": StateAttribute(name="G-code file", role="text", type="string"),
    "subtask_name": StateAttribute(name="Job name", role="text", type="string"),
    "print_error": StateAttribute(name="Print error code", role="value", type="number"),
    "print_type": StateAttribute(name="Print source", role="text", type="string"),
    # Normalized labels
    "stg_cur": StateAttribute(name="Current stage", role="text", type="string"),
    "spd_lvl": StateAttribute(name="Speed profile", role="text", type="string"),
    "spd_mag": StateAttribute(name="Speed magnitude", role="value", type="number", unit="%"),
    # Connectivity / hardware
    "wifi_signal": StateAttribute(name="WiFi signal", role="text", type="string"),
    "nozzle_diameter": StateAttribute(name="Nozzle diameter", role="text", type="string"),
    "sdcard": StateAttribute(name="SD card inserted", role="indicator", type="boolean"),
    # Arrays
    "lights_report": StateAttribute(name="Lights", role="channel", array=ArrayPolicy.INDEXED),
    "hms": StateAttribute(name="Health management messages", role="json", array=ArrayPolicy.SERIALIZED),
    "stg": StateAttribute(name="Stage history", role="json", array=ArrayPolicy.SERIALIZED),
    "ams": StateAttribute(name="AMS units", role="channel", array=ArrayPolicy.INDEXED),
    "tray": StateAttribute(name="Trays", role="channel", array=ArrayPolicy.INDEXED),
    "tray_cols": StateAttribute(name="Tray colours", role="json", array=ArrayPolicy.SERIALIZED),
    "mode": StateAttribute(name="Mode", role="text", type="string"),
    "node": StateAttribute(name="Node", role="text", type="string"),
}


def lookup(key: str) -> StateAttribute | None:
    return STATE_ATTRIBUTES.get(key)


def infer_type(value: Any) -> str:
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "mixed"


_DEFAULT_ROLES: dict[str, str] = {
    "boolean": "indicator",
    "number": "value",
    "string": "text",
    "mixed": "state",
}


def state_common(key: str, value: Any) -> ObjectCommon:
    """Build the metadata for a new state node named *key* holding *value*."""
    value_type = infer_type(value)
    attribute = lookup(key)
    if attribute is None:
        return ObjectCommon(
            name=key,
            type=value_type,
            role=_DEFAULT_ROLES[value_type],
            read=True,
            write=False,
        )
    return ObjectCommon(
        name=attribute.name,
        type=attribute.type or value_type,
        role=attribute.role if attribute.role != "channel" else _DEFAULT_ROLES[value_type],
        read=True,
        write=attribute.write,
        unit=attribute.unit,
    )


def channel_name(key: str) -> str:
    attribute = lookup(key)
    return attribute.name if attribute is not None else key


def array_policy(key: str, items: list[Any]) -> ArrayPolicy:
    """Decide how an array under *key* is projected."""
    attribute = lookup(key)
    if attribute is not None and attribute.array is not None:
        return attribute.array
    if any(isinstance(item, (dict, list)) for item in items):
        return ArrayPolicy.INDEXED
    return ArrayPolicy.SERIALIZED
