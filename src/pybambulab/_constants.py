"""Internal constants shared across the library."""

MQTT_PORT = 8883
MQTT_USERNAME = "bblp"

#: Delay before the explicit reconnect attempt after a transport error.
RECONNECT_DELAY_SECONDS = 5.0

#: paho-mqtt's own wire-level retry backoff, kept below the explicit delay.
AUTO_RECONNECT_MIN_DELAY = 1
AUTO_RECONNECT_MAX_DELAY = 4

CONNECTION_STATE_ID = "info.connection"
CONTROL_CHANNEL = "control"

# Command constants observed on the wire.
LEDCTRL_SEQUENCE_ID = "2003"
PRINT_SEQUENCE_ID = "0"
CHAMBER_LIGHT_NODE = "chamber_light"
LED_ON_TIME_MS = 500
LED_OFF_TIME_MS = 500


def report_topic(serial: str) -> str:
    """Topic the printer publishes telemetry on."""
    return f"device/{serial}/report"


def request_topic(serial: str) -> str:
    """Topic commands are published to (the printer echoes requests here too)."""
    return f"device/{serial}/request"
