"""Helpers for safe debug logging.

Configuration and outbound commands carry the LAN access code and the
account ``user_id``. Telemetry reports describe the printer's network in the
``net`` and ``ipcam`` sections (addresses, masks, the camera stream URL).
Credentials are redacted wherever they appear; inside a network section only
the endpoint fields are, so link state and camera settings stay readable.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {"password", "access_code", "accesscode", "user_id", "userid", "token", "authorization"}
)

_NETWORK_SECTIONS: frozenset[str] = frozenset({"net", "ipcam"})

_ENDPOINT_KEYS: frozenset[str] = frozenset({"ip", "mask", "gw", "dns", "mac", "rtsp_url", "ipcam_dev", "tutk_server"})

_REDACTED = "<redacted>"
_MAX_DEPTH = 20


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    return _redact(value, (), max_string)


def _in_network_section(path: tuple[str, ...]) -> bool:
    return any(segment in _NETWORK_SECTIONS for segment in path)


def _redact(value: Any, path: tuple[str, ...], max_string: int) -> Any:
    if len(path) > _MAX_DEPTH:
        return "<max-depth>"

    if isinstance(value, Mapping):
        return {str(key): _redact_entry(str(key), item, path, max_string) for key, item in value.items()}

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, Sequence):
        # Array entries share their parent's path.
        return [_redact(item, (*path, "[]"), max_string) for item in value]

    if value is None or isinstance(value, (int, float, bool)):
        return value

    return repr(value)


def _redact_entry(key: str, value: Any, path: tuple[str, ...], max_string: int) -> Any:
    name = key.lower()
    if name in _CREDENTIAL_KEYS:
        return _REDACTED
    if name in _ENDPOINT_KEYS and _in_network_section(path):
        return _REDACTED
    return _redact(value, (*path, name), max_string)
