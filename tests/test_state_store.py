from __future__ import annotations

from datetime import UTC, datetime

from pybambulab.state.objects import ObjectCommon, ObjectType, State, StateObject
from pybambulab.state.store import MemoryStateStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _recording(store: MemoryStateStore) -> list[tuple[str, State | None]]:
    events: list[tuple[str, State | None]] = []
    store.on("state_change", lambda path, state: events.append((path, state)))
    return events


def test_set_state_changed_suppresses_identical_writes() -> None:
    store = MemoryStateStore(clock=_dt)
    store.subscribe_states("*")
    events = _recording(store)

    assert store.set_state_changed("S.a", 5, ack=True) is True
    assert store.set_state_changed("S.a", 5, ack=True) is False
    assert len(events) == 1


def test_set_state_changed_emits_on_ack_flip() -> None:
    store = MemoryStateStore(clock=_dt)
    store.subscribe_states("*")
    events = _recording(store)

    store.set_state("S.control.chamberLight", True, ack=False)
    assert store.set_state_changed("S.control.chamberLight", True, ack=True) is True

    assert [state.ack for _, state in events if state is not None] == [False, True]


def test_set_state_changed_treats_type_change_as_change() -> None:
    store = MemoryStateStore(clock=_dt)
    store.set_state_changed("S.flag", True, ack=True)

    assert store.set_state_changed("S.flag", 1, ack=True) is True
    assert store.get_state("S.flag") == State(val=1, ack=True, ts=_dt())


def test_set_state_changed_treats_repeated_nan_as_unchanged() -> None:
    store = MemoryStateStore(clock=_dt)
    store.subscribe_states("*")
    events = _recording(store)

    assert store.set_state_changed("S.nozzle_temper", float("nan"), ack=True) is True
    assert store.set_state_changed("S.nozzle_temper", float("nan"), ack=True) is False
    assert store.set_state_changed("S.nozzle_temper", 210.0, ack=True) is True
    assert len(events) == 2


def test_only_subscribed_paths_notify() -> None:
    store = MemoryStateStore(clock=_dt)
    store.subscribe_states("S.control.*")
    events = _recording(store)

    store.set_state("S.nozzle_temper", 210, ack=True)
    store.set_state("S.control.start", True)

    assert [path for path, _ in events] == ["S.control.start"]


def test_delete_state_notifies_with_none() -> None:
    store = MemoryStateStore(clock=_dt)
    store.subscribe_states("*")
    events = _recording(store)

    store.set_state("S.a", 1)
    store.delete_state("S.a")
    store.delete_state("S.a")

    assert events[-1] == ("S.a", None)
    assert len(events) == 2


def test_extend_object_merges_common_fields() -> None:
    store = MemoryStateStore(clock=_dt)
    store.extend_object(
        "S.bed_temper",
        StateObject(type=ObjectType.STATE, common=ObjectCommon(name="Bed", type="number", unit="°C")),
    )
    merged = store.extend_object(
        "S.bed_temper",
        StateObject(type=ObjectType.STATE, common=ObjectCommon(name="Bed temperature", write=False)),
    )

    assert merged.common.name == "Bed temperature"
    assert merged.common.unit == "°C"
    assert merged.common.type == "number"
    assert store.get_object("S.bed_temper") == merged


def test_failing_handler_does_not_block_others() -> None:
    store = MemoryStateStore(clock=_dt)
    store.subscribe_states("*")

    def boom(_path: str, _state: State | None) -> None:
        raise RuntimeError("handler failure")

    store.on("state_change", boom)
    events = _recording(store)

    store.set_state("S.a", 1)

    assert len(events) == 1
