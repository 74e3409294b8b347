"""Inbound message classification and routing.

Printer payloads are JSON objects with a single top-level section:
``print`` carries telemetry (``push_status`` reports and echoes of print
commands), ``system`` carries acknowledgements of system commands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pybambulab._constants import CONTROL_CHANNEL
from pybambulab._redact import redact_for_log
from pybambulab.control import CHAMBER_LIGHT
from pybambulab.ingestion.explorer import StateTreeExplorer, split_path
from pybambulab.ingestion.normalize import NORMALIZERS, format_remaining_time
from pybambulab.state.store import StateStore

_logger = logging.getLogger(__name__)

_LIGHT_MODES: dict[str, bool] = {"on": True, "off": False}


@dataclass(frozen=True)
class TelemetryMessage:
    report: dict[str, Any]


@dataclass(frozen=True)
class SystemMessage:
    body: dict[str, Any]


@dataclass(frozen=True)
class UnknownMessage:
    document: Any


InboundMessage = TelemetryMessage | SystemMessage | UnknownMessage


def classify(document: Any) -> InboundMessage:
    """Tag a parsed payload by its top-level section (``print`` wins)."""
    if isinstance(document, dict):
        report = document.get("print")
        if isinstance(report, dict):
            return TelemetryMessage(report=report)
        body = document.get("system")
        if isinstance(body, dict):
            return SystemMessage(body=body)
    return UnknownMessage(document=document)


def chamber_light_from_report(report: dict[str, Any]) -> bool | None:
    """Chamber light state from the first ``lights_report`` entry, if any."""
    lights = report.get("lights_report")
    if not isinstance(lights, list) or not lights:
        return None
    first = lights[0]
    if not isinstance(first, dict):
        return None
    return _LIGHT_MODES.get(first.get("mode"))


class MessageDispatcher:
    """Route parsed inbound messages into the state store."""

    def __init__(
        self,
        *,
        serial: str,
        store: StateStore,
        explorer: StateTreeExplorer | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._serial = serial
        self._root = split_path(serial)
        self._store = store
        self._explorer = explorer or StateTreeExplorer(store)
        self._logger = logger or _logger

    def dispatch(self, topic: str, document: Any) -> None:
        """Session message handler; never raises."""
        try:
            message = classify(document)
            if isinstance(message, TelemetryMessage):
                self._handle_telemetry(message)
            elif isinstance(message, SystemMessage):
                self._logger.debug("System message topic=%s body=%s", topic, redact_for_log(message.body))
        except Exception:
            self._logger.error(
                "Failed to project message topic=%s payload=%s",
                topic,
                redact_for_log(document),
                exc_info=True,
            )

    def _handle_telemetry(self, message: TelemetryMessage) -> None:
        report = message.report
        raw = {key: value for key, value in report.items() if key not in NORMALIZERS}
        self._explorer.traverse(raw, self._serial, True, True, 0)
        self._apply_normalizers(report)

        light = chamber_light_from_report(report)
        if light is not None:
            self._store.set_state_changed(f"{self._serial}.{CONTROL_CHANNEL}.{CHAMBER_LIGHT}", light, ack=True)

    def _apply_normalizers(self, report: dict[str, Any]) -> None:
        for key, normalizer in NORMALIZERS.items():
            value = normalizer(report.get(key))
            if value is None:
                continue
            self._explorer.write_value((*self._root, key), value)

        remaining = format_remaining_time(report.get("mc_remaining_time"))
        if remaining is not None:
            self._logger.debug("Printer %s remaining time %s", self._serial, remaining)
