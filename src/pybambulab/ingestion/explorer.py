"""Recursive JSON-to-state-tree projection.

Every JSON object becomes a channel, every scalar a state node at
``<root>.<key>.<key>...``. Arrays are either expanded into indexed children
or stored as one serialized JSON node, depending on
:func:`pybambulab.state.attributes.array_policy`.

Nodes are created once and afterwards only updated through
``set_state_changed``, so replaying an unchanged document emits no events.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from pybambulab.exceptions import BambuProjectionError
from pybambulab.state import attributes
from pybambulab.state.attributes import ArrayPolicy
from pybambulab.state.objects import ObjectType, StateObject
from pybambulab.state.store import StateStore

JsonScalar: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonScalar | list["JsonValue"] | dict[str, "JsonValue"]
PathSegments: TypeAlias = tuple[str, ...]

_logger = logging.getLogger(__name__)


def join_path(segments: Sequence[str]) -> str:
    return ".".join(segments)


def split_path(path: str) -> PathSegments:
    return tuple(segment for segment in path.split(".") if segment)


def _sanitize_segment(key: Any) -> str:
    # Dots would silently create extra levels in the store.
    return str(key).replace(".", "_").replace(" ", "_")


class StateTreeExplorer:
    """Project arbitrary JSON documents into a :class:`StateStore`."""

    def __init__(self, store: StateStore, *, logger: logging.Logger | None = None) -> None:
        self._store = store
        self._logger = logger or _logger
        # Paths known to exist in the store, saves a lookup per leaf.
        self._known: set[str] = set()

    def traverse(
        self,
        document: Mapping[str, JsonValue],
        root_path: str,
        create_missing: bool = True,
        recurse: bool = True,
        depth: int = 0,
    ) -> None:
        """Walk *document* and write every leaf below *root_path*.

        Parameters
        ----------
        document
            JSON object to project.
        root_path
            Dotted prefix of every written node, usually the printer serial.
        create_missing
            Create store objects for unseen paths. When ``False`` only
            already existing nodes are updated.
        recurse
            Descend into nested objects. When ``False`` nested objects are
            stored as serialized JSON strings.
        depth
            Starting depth, only used for diagnostics.
        """
        if not isinstance(document, Mapping):
            raise BambuProjectionError(
                f"Expected a JSON object, got {type(document).__name__}",
                path=root_path,
            )
        self._walk_object(document, split_path(root_path), create_missing, recurse, depth)

    def write_value(self, segments: Sequence[str], value: JsonScalar, *, create_missing: bool = True) -> bool:
        """Create-if-missing and change-suppressed write of a single leaf.

        Returns whether the stored value changed.
        """
        path_segments = tuple(segments)
        path = join_path(path_segments)
        if not self._ensure_state(path, path_segments[-1], value, create_missing):
            return False
        return self._store.set_state_changed(path, value, ack=True)

    # ------------------------------------------------------------------
    # Structural recursion
    # ------------------------------------------------------------------

    def _walk_object(
        self,
        document: Mapping[str, JsonValue],
        segments: PathSegments,
        create_missing: bool,
        recurse: bool,
        depth: int,
    ) -> None:
        for raw_key, value in document.items():
            key = _sanitize_segment(raw_key)
            self._walk_value(key, value, (*segments, key), create_missing, recurse, depth)

    def _walk_value(
        self,
        key: str,
        value: JsonValue,
        segments: PathSegments,
        create_missing: bool,
        recurse: bool,
        depth: int,
    ) -> None:
        if isinstance(value, dict):
            if not recurse:
                self.write_value(segments, json.dumps(value, sort_keys=True), create_missing=create_missing)
                return
            self._ensure_channel(join_path(segments), attributes.channel_name(key), create_missing)
            self._logger.debug("Exploring %s (depth=%d)", join_path(segments), depth + 1)
            self._walk_object(value, segments, create_missing, recurse, depth + 1)
            return

        if isinstance(value, list):
            self._walk_array(key, value, segments, create_missing, recurse, depth)
            return

        self.write_value(segments, value, create_missing=create_missing)

    def _walk_array(
        self,
        key: str,
        items: list[JsonValue],
        segments: PathSegments,
        create_missing: bool,
        recurse: bool,
        depth: int,
    ) -> None:
        if attributes.array_policy(key, items) is ArrayPolicy.SERIALIZED:
            self.write_value(segments, json.dumps(items), create_missing=create_missing)
            return

        self._ensure_channel(join_path(segments), attributes.channel_name(key), create_missing)
        for index, item in enumerate(items):
            item_key = str(index)
            self._walk_value(item_key, item, (*segments, item_key), create_missing, recurse, depth + 1)

    # ------------------------------------------------------------------
    # Object creation
    # ------------------------------------------------------------------

    def _ensure_channel(self, path: str, name: str, create_missing: bool) -> bool:
        if path in self._known:
            return True
        if self._store.get_object(path) is None:
            if not create_missing:
                return False
            self._store.extend_object(path, StateObject.channel(name))
        self._known.add(path)
        return True

    def _ensure_state(self, path: str, key: str, value: JsonScalar, create_missing: bool) -> bool:
        if path in self._known:
            return True
        if self._store.get_object(path) is None:
            if not create_missing:
                return False
            common = attributes.state_common(key, value)
            self._store.extend_object(path, StateObject(type=ObjectType.STATE, common=common))
            self._logger.debug("Created state %s (%s/%s)", path, common.type, common.role)
        self._known.add(path)
        return True
