import json

import pytest

from automation.dsl import Action, ActionType, Configuration, ConfigurationError, Locator, LocatorKind


RECORDED = {
    "name": "checkout",
    "description": "Recorded checkout flow",
    "actions": [
        {
            "name": "Open shop",
            "actionType": "default",
            "type": "navigate",
            "selector": {"type": "none"},
            "value": "https://shop.example",
        },
        {
            "name": "Buy",
            "type": "click",
            "selector": {"type": "css", "value": "#buy", "isUnique": True},
            "meta": {"recordedAt": "12:00"},
        },
        {"type": "wait", "selector": {"type": "none"}, "value": "250"},
    ],
}


def test_configuration_parses_recorder_payload():
    config = Configuration.from_payload(RECORDED)

    assert config.name == "checkout"
    assert len(config.actions) == 3
    click = config.actions[1]
    assert click.action_type is ActionType.CLICK
    assert click.locator.kind is LocatorKind.CSS
    assert click.locator.value == "#buy"
    assert click.locator.is_unique is True
    assert click.metadata == {"recordedAt": "12:00"}
    assert config.actions[2].wait_ms() == 250


def test_configuration_from_file(tmp_path):
    path = tmp_path / "rpa_checkout.json"
    path.write_text(json.dumps(RECORDED), encoding="utf-8")

    config = Configuration.from_file(path)

    assert config.actions[0].value == "https://shop.example"


def test_malformed_configuration_raises_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        Configuration.from_payload({"name": "x", "actions": "not-a-list"})
    with pytest.raises(ConfigurationError):
        Configuration.from_payload(["not", "a", "mapping"])
    with pytest.raises(ConfigurationError):
        Configuration.from_json("{broken")
    with pytest.raises(ConfigurationError):
        Configuration.from_file(tmp_path / "missing.json")


def test_configuration_is_immutable():
    config = Configuration.from_payload(RECORDED)
    with pytest.raises(Exception):
        config.name = "changed"  # type: ignore[misc]


def test_locator_defaults_and_coercion():
    assert Locator().kind is LocatorKind.XPATH
    assert Locator.model_validate(None).kind is LocatorKind.NONE
    assert Locator.model_validate("#go") == Locator(kind=LocatorKind.CSS, value="#go")
    assert Locator.model_validate({"type": "ID", "value": "main"}).kind is LocatorKind.ID


def test_action_without_selector_gets_none_locator():
    action = Action.model_validate({"type": "Navigate", "value": "https://example.com"})
    assert action.type == "navigate"
    assert action.locator.kind is LocatorKind.NONE


@pytest.mark.parametrize(
    "value, expected",
    [(None, 1000), ("", 1000), ("abc", 1000), ("0", 0), (" 750 ", 750)],
)
def test_wait_ms_parsing(value, expected):
    assert Action(type="wait", value=value).wait_ms() == expected


@pytest.mark.parametrize(
    "value, expected",
    [(None, (0, 0)), ("10,20", (10, 20)), ("5", (5, 0)), ("x,7", (0, 7)), (" 3 , 4 ", (3, 4))],
)
def test_scroll_offsets_parsing(value, expected):
    assert Action(type="scroll", value=value).scroll_offsets() == expected


def test_unknown_action_type_is_kept():
    action = Action(type="hover")
    assert action.action_type is None
    assert action.display_name == "Hover"
    assert action.label == "Hover"


def test_display_names():
    assert ActionType.INPUT.display_name == "Type Input"
    assert ActionType.display_name_for("switch_frame") == "Switch Frame"
    assert Action(name="Go", type="click").label == "Go"


def test_to_payload_uses_field_names():
    config = Configuration.from_payload(RECORDED)
    payload = config.to_payload()
    assert payload["actions"][1]["locator"]["kind"] == "css"
    assert Configuration.from_payload(payload) == config
