"""JavaScript snippets executed on the interactive surface for each action.

Every helper returns a single expression so the surface can evaluate it as-is.
Values coming from recorded configurations are escaped before interpolation;
nothing outside this module should build script strings by hand.
"""

from __future__ import annotations

from typing import Optional

from .models import Action, ActionType, Locator, LocatorKind

NOOP_SCRIPT = "void 0"

XPATH_LOOKUP = (
    "document.evaluate('{xpath}', document, null, "
    "XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue"
)

SET_VALUE_TEMPLATE = """(() => {{
    const el = {lookup};
    if (!el) throw new Error('Element not found');
    el.value = '{value}';
    el.dispatchEvent(new Event('{event}', {{ bubbles: true }}));
    return true;
}})()"""


def escape_js(text: Optional[str]) -> str:
    """Escape ``text`` for use inside a single-quoted JavaScript string."""

    if not text:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def element_lookup(locator: Locator) -> Optional[str]:
    """Expression resolving ``locator`` to an element, or ``None`` when unsupported."""

    value = escape_js(locator.value)
    if locator.kind is LocatorKind.ID:
        return f"document.getElementById('{value}')"
    if locator.kind is LocatorKind.CSS:
        return f"document.querySelector('{value}')"
    if locator.kind is LocatorKind.XPATH:
        return XPATH_LOOKUP.format(xpath=value)
    return None


def navigate_script(url: Optional[str]) -> str:
    return f"window.location.href = '{escape_js(url)}'"


def click_script(locator: Locator) -> str:
    lookup = element_lookup(locator)
    if lookup is None:
        return NOOP_SCRIPT
    return f"{lookup}.click()"


def set_value_script(locator: Locator, value: Optional[str], *, event: str = "input") -> str:
    lookup = element_lookup(locator)
    if lookup is None:
        return NOOP_SCRIPT
    return SET_VALUE_TEMPLATE.format(lookup=lookup, value=escape_js(value), event=event)


def input_script(locator: Locator, value: Optional[str]) -> str:
    return set_value_script(locator, value, event="input")


def select_script(locator: Locator, value: Optional[str]) -> str:
    return set_value_script(locator, value, event="change")


def scroll_script(x: int, y: int) -> str:
    return f"window.scrollTo({int(x)}, {int(y)})"


def exists_script(locator: Locator) -> str:
    # Only id and CSS lookups are checked; other kinds trivially pass.
    if locator.kind in (LocatorKind.ID, LocatorKind.CSS):
        return f"{element_lookup(locator)} !== null"
    return "true"


def compile_action(action: Action) -> Optional[str]:
    """Script for ``action``; ``None`` for types that dispatch nothing."""

    kind = action.action_type
    if kind is ActionType.NAVIGATE:
        return navigate_script(action.value)
    if kind is ActionType.CLICK:
        return click_script(action.locator)
    if kind is ActionType.INPUT:
        return input_script(action.locator, action.value)
    if kind is ActionType.SELECT:
        return select_script(action.locator, action.value)
    if kind is ActionType.SCROLL:
        x, y = action.scroll_offsets()
        return scroll_script(x, y)
    if kind is ActionType.ASSERT:
        return exists_script(action.locator)
    return None


__all__ = [
    "NOOP_SCRIPT",
    "click_script",
    "compile_action",
    "element_lookup",
    "escape_js",
    "exists_script",
    "input_script",
    "navigate_script",
    "scroll_script",
    "select_script",
    "set_value_script",
]
