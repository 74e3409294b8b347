"""Control states and the state-write to command translation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pybambulab._constants import CONTROL_CHANNEL, request_topic
from pybambulab._redact import redact_for_log
from pybambulab.models.commands import LedControl, LedMode, PrintAction, PrintCommand, SystemCommand
from pybambulab.state.objects import ObjectCommon, ObjectType, State, StateObject
from pybambulab.state.store import StateStore

_logger = logging.getLogger(__name__)

CHAMBER_LIGHT = "chamberLight"

CONTROL_STATES: dict[str, ObjectCommon] = {
    CHAMBER_LIGHT: ObjectCommon(name="Chamber Light", type="boolean", role="switch.light", read=True, write=True),
    PrintAction.START.value: ObjectCommon(
        name="Start printing", type="boolean", role="button.start", read=False, write=True
    ),
    PrintAction.STOP.value: ObjectCommon(
        name="Stop printing", type="boolean", role="button.stop", read=False, write=True
    ),
    PrintAction.RESUME.value: ObjectCommon(
        name="Resume printing", type="boolean", role="button.resume", read=False, write=True
    ),
}

Publisher = Callable[[str, dict[str, Any]], bool]


def control_path(serial: str, name: str) -> str:
    return f"{serial}.{CONTROL_CHANNEL}.{name}"


def provision_control_states(store: StateStore, serial: str) -> None:
    """Declare the writable control states and subscribe to their writes."""
    store.extend_object(
        f"{serial}.{CONTROL_CHANNEL}",
        StateObject(type=ObjectType.CHANNEL, common=ObjectCommon(name="Control device")),
    )
    for name, common in CONTROL_STATES.items():
        path = control_path(serial, name)
        store.extend_object(path, StateObject(type=ObjectType.STATE, common=common))
        store.subscribe_states(path)


class CommandTranslator:
    """Turn unacknowledged control-state writes into printer commands.

    Acknowledged writes are echoes of printer telemetry (or of our own
    updates) and are never commands.
    """

    def __init__(
        self,
        *,
        serial: str,
        publish: Publisher,
        user_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._serial = serial
        self._publish = publish
        self._user_id = user_id
        self._logger = logger or _logger

    def translate(self, path: str, state: State | None) -> dict[str, Any] | None:
        if state is None or state.ack:
            return None

        segment = path.rsplit(".", 1)[-1]
        if segment == CHAMBER_LIGHT:
            return self._chamber_light(state.val)

        try:
            action = PrintAction(segment)
        except ValueError:
            return None
        return PrintCommand.for_action(action).to_payload()

    def _chamber_light(self, value: Any) -> dict[str, Any] | None:
        if value is True:
            mode = LedMode.ON
        elif value is False:
            mode = LedMode.OFF
        else:
            self._logger.debug("Ignoring non-boolean chamber light value %r", value)
            return None
        return SystemCommand(system=LedControl(led_mode=mode), user_id=self._user_id).to_payload()

    def handle_state_change(self, path: str, state: State | None) -> None:
        """Store ``state_change`` handler."""
        if state is None:
            self._logger.info("State %s deleted", path)
            return
        if state.ack:
            return

        self._logger.debug("Control write %s=%r", path, state.val)
        payload = self.translate(path, state)
        if payload is None:
            return

        topic = request_topic(self._serial)
        self._logger.debug("Publishing command topic=%s payload=%s", topic, redact_for_log(payload))
        # TODO: correlate system acks with sequence_id once the printer's reply format is pinned down.
        self._publish(topic, payload)
