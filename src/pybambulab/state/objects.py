"""Store object and state value models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ObjectType(StrEnum):
    STATE = "state"
    CHANNEL = "channel"


class ObjectCommon(BaseModel):
    """Static metadata of a store object.

    Only ``name`` is required; ``extend_object`` merges the fields that are
    set onto whatever the store already holds.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    type: str | None = None
    role: str | None = None
    read: bool | None = None
    write: bool | None = None
    unit: str | None = None


class StateObject(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: ObjectType
    common: ObjectCommon

    @classmethod
    def channel(cls, name: str) -> StateObject:
        return cls(type=ObjectType.CHANNEL, common=ObjectCommon(name=name))

    @property
    def writable(self) -> bool:
        return bool(self.common.write)


class State(BaseModel):
    """A value held by the store.

    ``ack`` is ``True`` for values that came from the printer and ``False``
    for writes that still wait to be reflected by the device.
    """

    model_config = ConfigDict(frozen=True)

    val: Any = None
    ack: bool = False
    ts: datetime = Field(default_factory=lambda: datetime.now(UTC))
