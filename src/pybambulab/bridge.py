"""High-level bridge between one printer and a state store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pybambulab._mqtt import BambuMqttSession, ClientFactory, SessionState, build_client
from pybambulab.config import BambuConfig
from pybambulab.control import CommandTranslator
from pybambulab.ingestion.dispatch import MessageDispatcher
from pybambulab.ingestion.explorer import StateTreeExplorer
from pybambulab.state.store import STATE_CHANGE_EVENT, StateStore

_logger = logging.getLogger(__name__)


class PrinterBridge:
    """Keep a state store in sync with a printer and relay control writes.

    Usage::

        store = MemoryStateStore()
        async with PrinterBridge(config, store) as bridge:
            ...
    """

    def __init__(
        self,
        config: BambuConfig,
        store: StateStore,
        *,
        client_factory: ClientFactory = build_client,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._logger = logger or _logger
        self._client_factory = client_factory
        self._session: BambuMqttSession | None = None
        self._explorer = StateTreeExplorer(store, logger=self._logger)
        self._dispatcher = MessageDispatcher(
            serial=config.serial,
            store=store,
            explorer=self._explorer,
            logger=self._logger,
        )
        self._translator = CommandTranslator(
            serial=config.serial,
            publish=self._publish,
            user_id=config.user_id,
            logger=self._logger,
        )
        store.on(STATE_CHANGE_EVENT, self._translator.handle_state_change)

    async def __aenter__(self) -> PrinterBridge:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    @property
    def session(self) -> BambuMqttSession | None:
        return self._session

    @property
    def dispatcher(self) -> MessageDispatcher:
        return self._dispatcher

    @property
    def translator(self) -> CommandTranslator:
        return self._translator

    @property
    def is_connected(self) -> bool:
        return self._session is not None and self._session.is_connected

    def start(self) -> None:
        """Create the session and start connecting. Needs a running loop."""
        if self._session is not None and self._session.state is not SessionState.CLOSED:
            return
        session = BambuMqttSession(
            config=self._config,
            store=self._store,
            loop=asyncio.get_running_loop(),
            client_factory=self._client_factory,
            logger=self._logger,
        )
        session.on_message(self._dispatcher.dispatch)
        self._session = session
        session.connect()

    def stop(self) -> None:
        session = self._session
        if session is None:
            return
        try:
            session.shutdown()
        except Exception:
            self._logger.error("Session shutdown failed", exc_info=True)

    async def aclose(self) -> None:
        """Shut the session down and wait for the MQTT client to close."""
        session = self._session
        if session is None:
            return
        try:
            await session.aclose()
        except Exception:
            self._logger.error("Session shutdown failed", exc_info=True)

    def _publish(self, topic: str, payload: dict[str, Any]) -> bool:
        session = self._session
        if session is None:
            self._logger.warning("Cannot publish to %s: bridge not started", topic)
            return False
        return session.publish(topic, payload)
