"""Bridge configuration for pybambulab."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pybambulab._constants import (
    AUTO_RECONNECT_MAX_DELAY,
    AUTO_RECONNECT_MIN_DELAY,
    MQTT_PORT,
    MQTT_USERNAME,
    RECONNECT_DELAY_SECONDS,
)
from pybambulab.exceptions import BambuConfigError


@dataclasses.dataclass(frozen=True)
class BambuConfig:
    """Bridge configuration.

    Parameters
    ----------
    host : str
        LAN address of the printer.
    password : str
        LAN access code shown on the printer display.
    serial : str
        Printer serial number. Used in MQTT topics and as the root of
        every state path written by the bridge.
    user_id : str or None
        Optional Bambu account id appended to ``ledctrl`` commands.
    port : int
        MQTT over TLS port. Defaults to ``8883``.
    username : str
        MQTT username. The printer only accepts ``"bblp"``.
    keepalive : int
        MQTT keepalive in seconds.
    reconnect_delay : float
        Seconds before the explicit reconnect attempt after a transport
        error. Defaults to 5 seconds.
    auto_reconnect_min_delay : int
        Lower bound of paho-mqtt's own reconnect backoff in seconds.
    auto_reconnect_max_delay : int
        Upper bound of paho-mqtt's own reconnect backoff in seconds.
    """

    host: str
    password: str
    serial: str
    user_id: str | None = None
    port: int = MQTT_PORT
    username: str = MQTT_USERNAME
    keepalive: int = 60
    reconnect_delay: float = RECONNECT_DELAY_SECONDS
    auto_reconnect_min_delay: int = AUTO_RECONNECT_MIN_DELAY
    auto_reconnect_max_delay: int = AUTO_RECONNECT_MAX_DELAY

    def __post_init__(self) -> None:
        missing = [name for name in ("host", "password", "serial") if not str(getattr(self, name) or "").strip()]
        if missing:
            raise BambuConfigError(f"Missing required configuration: {', '.join(missing)}")
        if self.reconnect_delay <= 0:
            raise BambuConfigError("reconnect_delay must be positive")
        if self.auto_reconnect_min_delay > self.auto_reconnect_max_delay:
            raise BambuConfigError("auto_reconnect_min_delay must not exceed auto_reconnect_max_delay")

    @classmethod
    def from_env(cls, **overrides: Any) -> BambuConfig:
        """Create configuration from environment variables.

        Reads ``BAMBU_HOST``, ``BAMBU_PASSWORD`` (or ``BAMBU_ACCESS_CODE``),
        ``BAMBU_SERIAL`` and the optional ``BAMBU_*`` tuning variables.
        Explicit keyword arguments override environment values.

        Returns
        -------
        BambuConfig
            Populated configuration.

        Raises
        ------
        BambuConfigError
            If a required value is missing or a numeric variable is malformed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BAMBU_HOST": "host",
            "BAMBU_SERIAL": "serial",
            "BAMBU_USER_ID": "user_id",
            "BAMBU_USERNAME": "username",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        password = env.get("BAMBU_PASSWORD") or env.get("BAMBU_ACCESS_CODE")
        if password is not None:
            config_kwargs["password"] = password

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "BAMBU_PORT": ("port", int),
            "BAMBU_KEEPALIVE": ("keepalive", int),
            "BAMBU_RECONNECT_DELAY": ("reconnect_delay", float),
        }
        for env_key, (field_name, caster) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = caster(val)
            except ValueError as exc:
                raise BambuConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        config_kwargs.update(overrides)
        for required in ("host", "password", "serial"):
            config_kwargs.setdefault(required, "")

        return cls(**config_kwargs)
