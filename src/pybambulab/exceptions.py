"""Custom exception hierarchy for pybambulab."""

from __future__ import annotations


class BambuError(Exception):
    """Base exception for all pybambulab errors."""


class BambuConfigError(BambuError):
    """Invalid or missing configuration."""


class BambuTransportError(BambuError):
    """MQTT connection refused, dropped, or timed out.

    Never fatal: the session moves to its reconnecting state instead.
    """

    def __init__(self, message: str, *, reason_code: int | None = None) -> None:
        self.reason_code = reason_code
        super().__init__(message)


class BambuParseError(BambuError):
    """Inbound payload is not UTF-8 JSON (or not a JSON object)."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class BambuProjectionError(BambuError):
    """Unexpected document shape while projecting telemetry into the store."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class BambuPublishError(BambuError):
    """Outbound command could not be handed to the MQTT client."""

    def __init__(self, message: str, *, topic: str = "", rc: int | None = None) -> None:
        self.topic = topic
        self.rc = rc
        super().__init__(message)
