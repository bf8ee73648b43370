from automation.dsl import Action, Locator, LocatorKind, scripts


def test_escape_js_quotes_and_backslashes():
    assert scripts.escape_js("it's") == "it\\'s"
    assert scripts.escape_js("a\\b") == "a\\\\b"
    assert scripts.escape_js(None) == ""


def test_click_script_per_locator_kind():
    assert scripts.click_script(Locator(kind=LocatorKind.ID, value="go")) == "document.getElementById('go').click()"
    assert scripts.click_script(Locator(kind=LocatorKind.CSS, value="#go")) == "document.querySelector('#go').click()"
    xpath = scripts.click_script(Locator(kind=LocatorKind.XPATH, value="//button[@id='go']"))
    assert "XPathResult.FIRST_ORDERED_NODE_TYPE" in xpath
    assert "//button[@id=\\'go\\']" in xpath
    assert xpath.endswith(".singleNodeValue.click()")


def test_unsupported_locators_compile_to_noop():
    assert scripts.click_script(Locator(kind=LocatorKind.TEXT, value="Go")) == scripts.NOOP_SCRIPT
    assert scripts.input_script(Locator.none(), "x") == scripts.NOOP_SCRIPT


def test_input_and_select_dispatch_different_events():
    locator = Locator(kind=LocatorKind.CSS, value="input[name=q]")
    typed = scripts.input_script(locator, "O'Brien")
    chosen = scripts.select_script(locator, "two")

    assert "el.value = 'O\\'Brien'" in typed
    assert "new Event('input'" in typed
    assert "new Event('change'" in chosen
    assert "document.querySelector('input[name=q]')" in chosen


def test_navigate_and_scroll_scripts():
    assert scripts.navigate_script("https://e.com/?q='x'") == "window.location.href = 'https://e.com/?q=\\'x\\''"
    assert scripts.scroll_script(10, 20) == "window.scrollTo(10, 20)"


def test_exists_script():
    assert scripts.exists_script(Locator(kind=LocatorKind.ID, value="a")) == "document.getElementById('a') !== null"
    assert scripts.exists_script(Locator(kind=LocatorKind.CSS, value=".a")) == "document.querySelector('.a') !== null"
    assert scripts.exists_script(Locator(kind=LocatorKind.XPATH, value="//a")) == "true"


def test_compile_action_routes_by_type():
    locator = Locator(kind=LocatorKind.CSS, value="#x")
    assert scripts.compile_action(Action(type="scroll", value="0,400")) == "window.scrollTo(0, 400)"
    assert "click()" in scripts.compile_action(Action(type="click", locator=locator))
    assert scripts.compile_action(Action(type="wait", value="10")) is None
    assert scripts.compile_action(Action(type="run_script", value="alert(1)")) is None
