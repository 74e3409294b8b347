"""State/store layer.

The bridge never persists anything itself. It talks to a hierarchical
key/value store through :class:`pybambulab.state.store.StateStore`;
:class:`pybambulab.state.store.MemoryStateStore` is the in-process
implementation used by scripts and tests.
"""

from pybambulab.state.objects import ObjectCommon, ObjectType, State, StateObject
from pybambulab.state.store import MemoryStateStore, StateChangeHandler, StateStore

__all__ = [
    "MemoryStateStore",
    "ObjectCommon",
    "ObjectType",
    "State",
    "StateChangeHandler",
    "StateObject",
    "StateStore",
]
