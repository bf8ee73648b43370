"""Typed action models and the script compiler built on top of them."""

from . import scripts
from .models import (
    Action,
    ActionType,
    Configuration,
    ConfigurationError,
    Locator,
    LocatorKind,
)

__all__ = [
    "Action",
    "ActionType",
    "Configuration",
    "ConfigurationError",
    "Locator",
    "LocatorKind",
    "scripts",
]
