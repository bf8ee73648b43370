"""Shared automation models."""

from .dsl import models, scripts
from .dsl.models import Action, Configuration, Locator

__all__ = ["models", "scripts", "Action", "Configuration", "Locator"]
