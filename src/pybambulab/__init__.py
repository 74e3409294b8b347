"""pybambulab - Bridge Bambu Lab printer MQTT to a hierarchical state store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pybambulab")
except PackageNotFoundError:
    __version__ = "0+local"
from pybambulab._mqtt import BambuMqttSession, SessionState
from pybambulab.bridge import PrinterBridge
from pybambulab.config import BambuConfig
from pybambulab.control import CommandTranslator
from pybambulab.exceptions import (
    BambuConfigError,
    BambuError,
    BambuParseError,
    BambuProjectionError,
    BambuPublishError,
    BambuTransportError,
)
from pybambulab.ingestion.dispatch import MessageDispatcher
from pybambulab.ingestion.explorer import StateTreeExplorer
from pybambulab.state import MemoryStateStore, State, StateObject, StateStore

__all__ = [
    "__version__",
    "BambuConfig",
    "BambuConfigError",
    "BambuError",
    "BambuMqttSession",
    "BambuParseError",
    "BambuProjectionError",
    "BambuPublishError",
    "BambuTransportError",
    "CommandTranslator",
    "MemoryStateStore",
    "MessageDispatcher",
    "PrinterBridge",
    "SessionState",
    "State",
    "StateObject",
    "StateStore",
    "StateTreeExplorer",
]
