"""MQTT session with the printer's local broker.

paho-mqtt runs its network loop on a background thread. Every paho callback
is handed over to the owning asyncio loop with ``call_soon_threadsafe`` so
the session state machine, the message handler and all store writes run on
the loop thread, one at a time and in arrival order.

State machine::

    DISCONNECTED -> CONNECTING -> CONNECTED -> RECONNECTING <-> CONNECTED
                                                        any -> CLOSED

paho's own automatic reconnect and the explicit reconnect timer are both
allowed to bring the session back; the timer is a no-op once the session is
connecting or connected again, and at most one timer is ever pending.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import secrets
import ssl
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pybambulab._constants import CONNECTION_STATE_ID, report_topic, request_topic
from pybambulab._redact import redact_for_log
from pybambulab.config import BambuConfig
from pybambulab.control import provision_control_states
from pybambulab.exceptions import BambuParseError, BambuPublishError, BambuTransportError
from pybambulab.state.store import StateStore

MessageHandler = Callable[[str, Any], None]
ClientFactory = Callable[[BambuConfig], mqtt.Client]


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


def parse_payload(payload: bytes, *, topic: str = "") -> Any:
    """Decode an inbound frame as UTF-8 JSON."""
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BambuParseError(f"Payload is not UTF-8 JSON: {exc}", topic=topic) from exc


def _reason_value(reason_code: Any) -> int:
    return int(getattr(reason_code, "value", reason_code) or 0)


def build_client(config: BambuConfig) -> mqtt.Client:
    """Create a paho client configured for the printer's TLS endpoint."""
    client = mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=f"pybambulab_{config.serial}_{secrets.token_hex(4)}",
        protocol=mqtt.MQTTv311,
    )
    client.username_pw_set(config.username, config.password)

    # The printer presents a self-issued certificate on the LAN.
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    client.tls_set_context(ssl_context)

    client.reconnect_delay_set(
        min_delay=config.auto_reconnect_min_delay,
        max_delay=config.auto_reconnect_max_delay,
    )
    return client


class BambuMqttSession:
    """Owns the MQTT client handle and the pending reconnect timer."""

    def __init__(
        self,
        *,
        config: BambuConfig,
        store: StateStore,
        loop: asyncio.AbstractEventLoop | None = None,
        client_factory: ClientFactory = build_client,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._loop = loop
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._state = SessionState.DISCONNECTED
        self._handler: MessageHandler | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def on_message(self, handler: MessageHandler) -> None:
        """Register the single consumer of parsed inbound messages."""
        self._handler = handler

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Start connecting. Must be called from the owning event loop."""
        if self._state in (SessionState.CONNECTING, SessionState.CONNECTED):
            self._logger.debug("Connect ignored, session already %s", self._state.value)
            return
        if self._state is SessionState.CLOSED:
            self._logger.warning("Connect ignored, session was shut down")
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._store.set_state_changed(CONNECTION_STATE_ID, False, ack=True)
        self._logger.debug("Try to connect to printer host=%s port=%s", self._config.host, self._config.port)
        self._open_client()

    def shutdown(self) -> None:
        """Cancel the reconnect timer and close the client. Idempotent.

        The client is closed on the default executor; use :meth:`aclose` to
        wait for its network thread to finish.
        """
        client = self._detach()
        if client is not None:
            self._close_in_background(client)

    async def aclose(self) -> None:
        """Like :meth:`shutdown`, but wait until the client is closed."""
        client = self._detach()
        if client is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._close_client, client)
        except Exception:
            self._logger.debug("MQTT client close failed", exc_info=True)

    def _detach(self) -> mqtt.Client | None:
        self._cancel_reconnect()
        client = self._client
        self._client = None
        was_closed = self._state is SessionState.CLOSED
        self._state = SessionState.CLOSED

        if not was_closed:
            self._store.set_state_changed(CONNECTION_STATE_ID, False, ack=True)
            self._logger.info("Connection to printer closed")
        return client

    def _open_client(self) -> None:
        self._state = SessionState.CONNECTING
        client = self._client_factory(self._config)
        client.enable_logger(self._logger)
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client

        try:
            client.connect_async(self._config.host, self._config.port, keepalive=self._config.keepalive)
            client.loop_start()
        except Exception as exc:
            self._handle_transport_error(client, BambuTransportError(f"Could not start connection: {exc}"))

    def _close_client(self, client: mqtt.Client) -> None:
        # Joins paho's network thread; never call on the event loop thread.
        try:
            client.disconnect()
        except Exception:
            self._logger.debug("MQTT disconnect failed", exc_info=True)
        finally:
            client.loop_stop()

    def _close_in_background(self, client: mqtt.Client) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self._close_client(client)
            return
        future = loop.run_in_executor(None, self._close_client, client)
        future.add_done_callback(self._log_close_result)

    def _log_close_result(self, future: asyncio.Future[None]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._logger.debug("MQTT client close failed", exc_info=exc)

    # ------------------------------------------------------------------
    # Reconnect policy
    # ------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        loop = self._loop
        if loop is None:
            raise RuntimeError("Session has no event loop; call connect() from a running loop")
        self._cancel_reconnect()
        self._reconnect_handle = loop.call_later(self._config.reconnect_delay, self._reconnect)
        self._logger.debug("Reconnect scheduled in %.1fs", self._config.reconnect_delay)

    def _cancel_reconnect(self) -> None:
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            handle.cancel()

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._state is not SessionState.RECONNECTING:
            self._logger.debug("Reconnect skipped, session is %s", self._state.value)
            return

        self._logger.info("Reconnecting to printer %s", self._config.host)
        previous = self._client
        self._client = None
        if previous is not None:
            # Late callbacks from the old client fail the ``_is_current`` check.
            self._close_in_background(previous)
        self._open_client()

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _call_soon(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            self._logger.debug("Event loop closed, dropping MQTT callback", exc_info=True)

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any = None,
    ) -> None:
        self._call_soon(self._handle_connect, client, _reason_value(reason_code))

    def _on_connect_fail(self, client: mqtt.Client, _userdata: Any) -> None:
        self._call_soon(self._handle_transport_error, client, BambuTransportError("Connection attempt failed"))

    def _on_disconnect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any = None,
    ) -> None:
        rc = _reason_value(reason_code)
        self._call_soon(
            self._handle_transport_error,
            client,
            BambuTransportError(f"Connection lost (rc={rc})", reason_code=rc),
        )

    def _on_message(self, client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            document = parse_payload(msg.payload, topic=msg.topic)
        except BambuParseError as exc:
            self._logger.warning("Dropping malformed payload topic=%s: %s", msg.topic, exc)
            return
        self._call_soon(self._deliver, client, msg.topic, document)

    # ------------------------------------------------------------------
    # Loop-thread handlers
    # ------------------------------------------------------------------

    def _is_current(self, client: mqtt.Client) -> bool:
        return client is self._client and self._state is not SessionState.CLOSED

    def _handle_connect(self, client: mqtt.Client, reason_code: int) -> None:
        if not self._is_current(client):
            return
        if reason_code != 0:
            self._handle_transport_error(
                client,
                BambuTransportError(f"Connection refused (rc={reason_code})", reason_code=reason_code),
            )
            return

        self._cancel_reconnect()
        self._state = SessionState.CONNECTED
        self._logger.info("Printer connected")
        self._store.set_state_changed(CONNECTION_STATE_ID, True, ack=True)

        provision_control_states(self._store, self._config.serial)

        topics = [report_topic(self._config.serial), request_topic(self._config.serial)]
        client.subscribe([(topic, 0) for topic in topics])
        self._logger.debug("Subscribed to printer topics %s", topics)

    def _handle_transport_error(self, client: mqtt.Client, error: BambuTransportError) -> None:
        if not self._is_current(client):
            return
        if self._state is SessionState.RECONNECTING:
            self._logger.debug("Transport error while reconnecting: %s", error)
        else:
            self._logger.error("Connection issue occurred: %s", error)
        self._state = SessionState.RECONNECTING
        self._store.set_state_changed(CONNECTION_STATE_ID, False, ack=True)
        self._schedule_reconnect()

    def _deliver(self, client: mqtt.Client, topic: str, document: Any) -> None:
        if not self._is_current(client) or self._handler is None:
            return
        try:
            self._handler(topic, document)
        except Exception:
            self._logger.error("Message handler failed topic=%s", topic, exc_info=True)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        """Send *payload* at most once. Failures are logged, not retried."""
        client = self._client
        if client is None or self._state is not SessionState.CONNECTED:
            self._logger.warning("Cannot publish to %s: printer not connected", topic)
            return False

        self._logger.debug("Publish message topic=%s payload=%s", topic, redact_for_log(payload))
        try:
            info = client.publish(topic, json.dumps(payload), qos=0, retain=False)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                raise BambuPublishError(f"Publish rejected (rc={info.rc})", topic=topic, rc=info.rc)
        except BambuPublishError as exc:
            self._logger.error("Publish to %s failed: %s", topic, exc)
            return False
        except (ValueError, OSError):
            self._logger.error("Publish to %s failed", topic, exc_info=True)
            return False
        return True
