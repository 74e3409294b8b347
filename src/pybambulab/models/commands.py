"""Outbound command payloads.

Commands are published as ``{"system": {...}}`` or ``{"print": {...}}``
JSON objects on ``device/<serial>/request``. They are built, serialized and
forgotten: no acknowledgement is correlated with the ``sequence_id``.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from pybambulab._constants import (
    CHAMBER_LIGHT_NODE,
    LED_OFF_TIME_MS,
    LED_ON_TIME_MS,
    LEDCTRL_SEQUENCE_ID,
    PRINT_SEQUENCE_ID,
)


class LedMode(enum.StrEnum):
    ON = "on"
    OFF = "off"


class PrintAction(enum.StrEnum):
    """``print.command`` values accepted from control states."""

    START = "start"
    STOP = "stop"
    RESUME = "resume"


class LedControl(BaseModel):
    """Body of a ``ledctrl`` system command."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sequence_id: str = LEDCTRL_SEQUENCE_ID
    command: str = "ledctrl"
    led_node: str = CHAMBER_LIGHT_NODE
    led_mode: LedMode
    led_on_time: int = LED_ON_TIME_MS
    led_off_time: int = LED_OFF_TIME_MS
    loop_times: int = 0
    interval_time: int = 0


class SystemCommand(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    system: LedControl
    user_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class _PrintBody(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    sequence_id: str = PRINT_SEQUENCE_ID
    command: PrintAction


class PrintCommand(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    print: _PrintBody

    @classmethod
    def for_action(cls, action: PrintAction) -> PrintCommand:
        return cls(print=_PrintBody(command=action))

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
