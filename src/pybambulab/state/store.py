"""State store contract and a deterministic in-memory implementation.

The bridge only needs a small slice of a key/value + metadata registry:
read/write states, change-suppressing writes, object (metadata) upserts,
and change notifications for subscribed paths.
"""

from __future__ import annotations

import fnmatch
import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from pybambulab.state.objects import State, StateObject

StateChangeHandler = Callable[[str, State | None], None]

STATE_CHANGE_EVENT = "state_change"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _same_value(current: Any, incoming: Any) -> bool:
    # ``True == 1`` in Python; a type change is a change.
    if type(current) is not type(incoming):
        return False
    # NaN never equals itself; a repeated NaN is not a change.
    if isinstance(current, float) and math.isnan(current) and math.isnan(incoming):
        return True
    return current == incoming


class StateStore(Protocol):
    """Structural interface of the external state store."""

    def get_state(self, path: str) -> State | None: ...

    def set_state(self, path: str, val: Any, *, ack: bool = False) -> State: ...

    def set_state_changed(self, path: str, val: Any, *, ack: bool = False) -> bool: ...

    def get_object(self, path: str) -> StateObject | None: ...

    def extend_object(self, path: str, obj: StateObject) -> StateObject: ...

    def subscribe_states(self, pattern: str) -> None: ...

    def on(self, event: str, handler: StateChangeHandler) -> None: ...


class MemoryStateStore:
    """In-memory store keyed by dotted paths.

    Change handlers registered with ``on("state_change", ...)`` are invoked
    synchronously, and only for paths matching a pattern passed to
    :meth:`subscribe_states`.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._states: dict[str, State] = {}
        self._objects: dict[str, StateObject] = {}
        self._subscriptions: list[str] = []
        self._handlers: dict[str, list[StateChangeHandler]] = {}

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def get_state(self, path: str) -> State | None:
        return self._states.get(path)

    def set_state(self, path: str, val: Any, *, ack: bool = False) -> State:
        """Write a state unconditionally and notify subscribers."""
        state = State(val=val, ack=ack, ts=self._clock())
        self._states[path] = state
        self._emit(path, state)
        return state

    def set_state_changed(self, path: str, val: Any, *, ack: bool = False) -> bool:
        """Write a state only if value or ack differ from the stored one.

        Returns whether a write (and therefore a change event) happened.
        """
        current = self._states.get(path)
        if current is not None and current.ack == ack and _same_value(current.val, val):
            return False
        self.set_state(path, val, ack=ack)
        return True

    def delete_state(self, path: str) -> None:
        if self._states.pop(path, None) is not None:
            self._emit(path, None)

    def states(self, prefix: str = "") -> dict[str, State]:
        """Snapshot of all states under *prefix*."""
        return {path: state for path, state in self._states.items() if path.startswith(prefix)}

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def get_object(self, path: str) -> StateObject | None:
        return self._objects.get(path)

    def extend_object(self, path: str, obj: StateObject) -> StateObject:
        """Create *path* or merge the set fields of *obj* into it."""
        existing = self._objects.get(path)
        if existing is None:
            merged = obj.model_copy(deep=True)
        else:
            common = existing.common.model_copy(update=obj.common.model_dump(exclude_none=True))
            merged = StateObject(type=obj.type, common=common)
        self._objects[path] = merged
        return merged

    def objects(self, prefix: str = "") -> dict[str, StateObject]:
        return {path: obj for path, obj in self._objects.items() if path.startswith(prefix)}

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_states(self, pattern: str) -> None:
        if pattern not in self._subscriptions:
            self._subscriptions.append(pattern)

    def on(self, event: str, handler: StateChangeHandler) -> None:
        if event != STATE_CHANGE_EVENT:
            raise ValueError(f"Unsupported store event: {event}")
        self._handlers.setdefault(event, []).append(handler)

    def _is_subscribed(self, path: str) -> bool:
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self._subscriptions)

    def _emit(self, path: str, state: State | None) -> None:
        if not self._is_subscribed(path):
            return
        for handler in list(self._handlers.get(STATE_CHANGE_EVENT, [])):
            try:
                handler(path, state)
            except Exception:
                self._logger.error("State change handler failed for %s", path, exc_info=True)
