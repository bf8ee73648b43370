"""Typed models describing recorded automation configurations."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

DEFAULT_WAIT_MS = 1000


class ConfigurationError(ValueError):
    """Raised when a configuration payload cannot be turned into a model."""


class LocatorKind(str, Enum):
    ID = "id"
    CSS = "css"
    XPATH = "xpath"
    TEXT = "text"
    NONE = "none"


class ActionType(str, Enum):
    CLICK = "click"
    INPUT = "input"
    SELECT = "select"
    NAVIGATE = "navigate"
    WAIT = "wait"
    SCROLL = "scroll"
    SCREENSHOT = "screenshot"
    ASSERT = "assert"
    SWITCH_FRAME = "switch_frame"
    RUN_SCRIPT = "run_script"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> Optional["ActionType"]:
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def display_name_for(cls, value: str) -> str:
        known = cls.parse(value)
        if known is not None:
            return known.display_name
        return value[:1].upper() + value[1:]


_DISPLAY_NAMES: Dict[ActionType, str] = {
    ActionType.CLICK: "Click",
    ActionType.INPUT: "Type Input",
    ActionType.SELECT: "Select Option",
    ActionType.NAVIGATE: "Navigate",
    ActionType.WAIT: "Wait",
    ActionType.SCROLL: "Scroll",
    ActionType.SCREENSHOT: "Screenshot",
    ActionType.ASSERT: "Assert",
    ActionType.SWITCH_FRAME: "Switch Frame",
    ActionType.RUN_SCRIPT: "Run Script",
}


class Locator(BaseModel):
    """Description of how to find the target element of an action."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    kind: LocatorKind = Field(
        default=LocatorKind.XPATH,
        validation_alias=AliasChoices("kind", "type"),
    )
    value: Optional[str] = None
    is_unique: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("is_unique", "isUnique"),
    )

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        if value is None:
            return {"kind": LocatorKind.NONE}
        if isinstance(value, str):
            # Bare strings are treated as CSS selectors.
            return {"kind": LocatorKind.CSS, "value": value}
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def none(cls) -> "Locator":
        return cls(kind=LocatorKind.NONE)


class Action(BaseModel):
    """One recorded automation step."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = ""
    category: str = Field(
        default="default",
        validation_alias=AliasChoices("category", "actionType", "action_type"),
    )
    type: str
    locator: Locator = Field(
        default_factory=Locator.none,
        validation_alias=AliasChoices("locator", "selector"),
    )
    value: Optional[str] = None
    metadata: Optional[Dict[str, str]] = Field(
        default=None,
        validation_alias=AliasChoices("metadata", "meta"),
    )

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if isinstance(value, ActionType):
            return value.value
        if isinstance(value, str):
            cleaned = value.strip().lower()
            if not cleaned:
                raise ValueError("action type must not be empty")
            return cleaned
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def action_type(self) -> Optional[ActionType]:
        """The known action type, or ``None`` for types this engine does not know."""

        return ActionType.parse(self.type)

    @property
    def display_name(self) -> str:
        return ActionType.display_name_for(self.type)

    @property
    def label(self) -> str:
        return self.name or self.display_name

    def wait_ms(self) -> int:
        """Payload interpreted as a millisecond delay."""

        if self.value is None:
            return DEFAULT_WAIT_MS
        try:
            return int(self.value.strip())
        except ValueError:
            return DEFAULT_WAIT_MS

    def scroll_offsets(self) -> Tuple[int, int]:
        """Payload interpreted as ``"x,y"``; missing or broken parts become 0."""

        parts = (self.value or "").split(",")

        def _component(idx: int) -> int:
            if idx >= len(parts):
                return 0
            try:
                return int(parts[idx].strip())
            except ValueError:
                return 0

        return _component(0), _component(1)

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Configuration(BaseModel):
    """Named, ordered list of actions to replay."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    description: str = ""
    actions: Tuple[Action, ...] = ()

    @field_validator("actions", mode="before")
    @classmethod
    def _ensure_sequence(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (str, bytes, dict)):
            raise ValueError("actions must be a list")
        return value

    @classmethod
    def from_payload(cls, payload: Union["Configuration", Dict[str, Any]]) -> "Configuration":
        if isinstance(payload, Configuration):
            return payload
        if not isinstance(payload, dict):
            raise ConfigurationError("configuration must be a JSON object")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid configuration: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> "Configuration":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"configuration is not valid JSON: {exc}") from exc
        return cls.from_payload(data)

    @classmethod
    def from_file(cls, path: Path) -> "Configuration":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"cannot read configuration {path}: {exc}") from exc
        return cls.from_json(text)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "actions": [action.payload() for action in self.actions],
        }


__all__ = [
    "Action",
    "ActionType",
    "Configuration",
    "ConfigurationError",
    "DEFAULT_WAIT_MS",
    "Locator",
    "LocatorKind",
]
