from __future__ import annotations

import asyncio
import json
import time
from types import SimpleNamespace
from typing import Any

import pytest

from pybambulab.config import BambuConfig
from pybambulab.state.store import MemoryStateStore

SERIAL = "01S00C123456789"


class FakeMqttClient:
    """Stand-in for ``paho.mqtt.client.Client`` recording every call."""

    def __init__(self, config: BambuConfig) -> None:
        self.config = config
        self.connect_args: tuple[str, int, int] | None = None
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = False
        self.subscriptions: list[tuple[str, int]] = []
        self.published: list[tuple[str, dict[str, Any], int, bool]] = []
        self.publish_rc = 0
        # Seconds ``loop_stop`` blocks, like joining a busy network thread.
        self.loop_stop_delay = 0.0
        self.on_connect: Any = None
        self.on_connect_fail: Any = None
        self.on_disconnect: Any = None
        self.on_message: Any = None

    def enable_logger(self, _logger: Any) -> None:
        return None

    def connect_async(self, host: str, port: int, keepalive: int = 60) -> None:
        self.connect_args = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_started = True

    def loop_stop(self) -> None:
        if self.loop_stop_delay:
            time.sleep(self.loop_stop_delay)
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topics: list[tuple[str, int]]) -> None:
        self.subscriptions.extend(topics)

    def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> Any:
        self.published.append((topic, json.loads(payload), qos, retain))
        return SimpleNamespace(rc=self.publish_rc)

    # Helpers simulating the paho network thread.

    def fire_connect(self, rc: int = 0) -> None:
        self.on_connect(self, None, None, rc, None)

    def fire_disconnect(self, rc: int = 7) -> None:
        self.on_disconnect(self, None, None, rc, None)

    def fire_message(self, topic: str, payload: bytes | dict[str, Any]) -> None:
        raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=raw))


class FakeClientFactory:
    def __init__(self) -> None:
        self.clients: list[FakeMqttClient] = []

    def __call__(self, config: BambuConfig) -> FakeMqttClient:
        client = FakeMqttClient(config)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeMqttClient:
        return self.clients[-1]


async def drain() -> None:
    """Let callbacks queued with ``call_soon_threadsafe`` run."""
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.fixture
def config() -> BambuConfig:
    return BambuConfig(host="192.168.1.50", password="12345678", serial=SERIAL, reconnect_delay=0.05)


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()
