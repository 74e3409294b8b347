"""Typed models for outbound printer commands."""

from pybambulab.models.commands import (
    LedControl,
    LedMode,
    PrintAction,
    PrintCommand,
    SystemCommand,
)

__all__ = [
    "LedControl",
    "LedMode",
    "PrintAction",
    "PrintCommand",
    "SystemCommand",
]
