from __future__ import annotations

from typing import Any

import pytest

from pybambulab._mqtt import parse_payload
from pybambulab.ingestion.dispatch import (
    MessageDispatcher,
    SystemMessage,
    TelemetryMessage,
    UnknownMessage,
    chamber_light_from_report,
    classify,
)
from pybambulab.state.objects import State
from pybambulab.state.store import MemoryStateStore

SERIAL = "01S00C123456789"
TOPIC = f"device/{SERIAL}/report"
LIGHT = f"{SERIAL}.control.chamberLight"


def _setup() -> tuple[MemoryStateStore, MessageDispatcher, list[str]]:
    store = MemoryStateStore()
    store.subscribe_states("*")
    events: list[str] = []

    def record(path: str, _state: State | None) -> None:
        events.append(path)

    store.on("state_change", record)
    return store, MessageDispatcher(serial=SERIAL, store=store), events


def test_classify_tags_sections() -> None:
    assert classify({"print": {"command": "push_status"}}) == TelemetryMessage(report={"command": "push_status"})
    assert classify({"system": {"command": "ledctrl"}}) == SystemMessage(body={"command": "ledctrl"})
    assert isinstance(classify({"info": {}}), UnknownMessage)
    assert isinstance(classify([1, 2]), UnknownMessage)
    assert isinstance(classify("print"), UnknownMessage)


def test_classify_prefers_print_over_system() -> None:
    message = classify({"print": {"a": 1}, "system": {"b": 2}})
    assert isinstance(message, TelemetryMessage)


@pytest.mark.parametrize(
    ("report", "expected"),
    [
        ({"lights_report": [{"node": "chamber_light", "mode": "on"}]}, True),
        ({"lights_report": [{"node": "chamber_light", "mode": "off"}]}, False),
        ({"lights_report": [{"node": "chamber_light", "mode": "flashing"}]}, None),
        ({"lights_report": []}, None),
        ({"lights_report": ["on"]}, None),
        ({}, None),
    ],
)
def test_chamber_light_from_report(report: dict[str, Any], expected: bool | None) -> None:
    assert chamber_light_from_report(report) is expected


def test_lights_report_sets_chamber_light_acknowledged() -> None:
    store, dispatcher, _ = _setup()

    dispatcher.dispatch(TOPIC, {"print": {"lights_report": [{"mode": "on"}]}})
    state = store.get_state(LIGHT)
    assert state is not None
    assert (state.val, state.ack) == (True, True)

    dispatcher.dispatch(TOPIC, {"print": {"lights_report": [{"mode": "off"}]}})
    state = store.get_state(LIGHT)
    assert state is not None
    assert (state.val, state.ack) == (False, True)


def test_only_first_light_entry_is_inspected() -> None:
    store, dispatcher, _ = _setup()

    dispatcher.dispatch(
        TOPIC,
        {"print": {"lights_report": [{"node": "work_light", "mode": "flashing"}, {"mode": "on"}]}},
    )

    assert store.get_state(LIGHT) is None


def test_normalized_fields_overwrite_raw_values() -> None:
    store, dispatcher, _ = _setup()

    dispatcher.dispatch(
        TOPIC,
        {
            "print": {
                "cooling_fan_speed": "15",
                "big_fan1_speed": "0",
                "stg_cur": 2,
                "spd_lvl": 2,
                "mc_remaining_time": -3,
                "nozzle_temper": 24.5,
            }
        },
    )

    assert store.get_state(f"{SERIAL}.cooling_fan_speed").val == 100
    assert store.get_state(f"{SERIAL}.big_fan1_speed").val == 0
    assert store.get_state(f"{SERIAL}.stg_cur").val == "heatbed preheating"
    assert store.get_state(f"{SERIAL}.spd_lvl").val == "standard"
    assert store.get_state(f"{SERIAL}.mc_remaining_time").val == 0
    assert store.get_state(f"{SERIAL}.nozzle_temper").val == 24.5


def test_absent_fan_value_leaves_prior_value() -> None:
    store, dispatcher, _ = _setup()
    dispatcher.dispatch(TOPIC, {"print": {"cooling_fan_speed": "15"}})

    dispatcher.dispatch(TOPIC, {"print": {"nozzle_temper": 200}})

    assert store.get_state(f"{SERIAL}.cooling_fan_speed").val == 100


def test_replaying_telemetry_emits_no_new_events() -> None:
    _, dispatcher, events = _setup()
    message = {
        "print": {
            "command": "push_status",
            "cooling_fan_speed": "10",
            "stg_cur": 0,
            "lights_report": [{"node": "chamber_light", "mode": "on"}],
            "upgrade_state": {"status": "IDLE"},
        }
    }

    dispatcher.dispatch(TOPIC, message)
    first = len(events)
    dispatcher.dispatch(TOPIC, message)

    assert len(events) == first


def test_system_and_unknown_messages_do_not_touch_the_store() -> None:
    store, dispatcher, events = _setup()

    dispatcher.dispatch(f"device/{SERIAL}/request", {"system": {"command": "ledctrl", "result": "success"}})
    dispatcher.dispatch(TOPIC, {"info": {"command": "get_version"}})
    dispatcher.dispatch(TOPIC, "garbage")

    assert events == []
    assert store.states() == {}


def test_projection_failure_is_logged_and_next_message_processed(caplog: pytest.LogCaptureFixture) -> None:
    store, dispatcher, _ = _setup()

    class Exploding(dict):
        def items(self) -> Any:  # type: ignore[override]
            raise RuntimeError("broken report")

    dispatcher.dispatch(TOPIC, {"print": Exploding(bed_temper=1)})
    dispatcher.dispatch(TOPIC, {"print": {"bed_temper": 60}})

    assert "Failed to project message" in caplog.text
    assert store.get_state(f"{SERIAL}.bed_temper").val == 60


def test_replayed_nan_reading_emits_no_further_events() -> None:
    store, dispatcher, events = _setup()
    document = parse_payload(b'{"print": {"nozzle_temper": NaN}}', topic=TOPIC)

    dispatcher.dispatch(TOPIC, document)
    first = len(events)
    dispatcher.dispatch(TOPIC, document)

    assert first == 1
    assert len(events) == first
