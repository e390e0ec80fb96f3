"""Tests for the typed action union."""

import pytest

from deskpilot.actions import (
    BrowseAndAsk,
    Click,
    ClickAt,
    KeyCombo,
    Note,
    OpenApp,
    PressKey,
    RawAction,
    RunShell,
    RunTask,
    Scroll,
    TypeText,
    Wait,
    WriteFile,
    action_from_dict,
    action_to_dict,
    canonical_kind,
    describe_action,
    parse_action,
    parse_step_action,
)
from deskpilot.errors import ActionParseError


class TestCanonicalKind:
    @pytest.mark.parametrize("spelling", ["clickAt", "click_at", "clickat", "CLICK-AT"])
    def test_spellings_of_click_at(self, spelling):
        assert canonical_kind(spelling) == "click_at"

    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("type", "type_text"),
            ("press", "press_key"),
            ("keyCombo", "key_combo"),
            ("shell", "run_shell"),
            ("chat", "note"),
        ],
    )
    def test_aliases(self, alias, expected):
        assert canonical_kind(alias) == expected

    def test_unknown_kind_is_lowercased(self):
        assert canonical_kind("Teleport") == "teleport"


class TestParseAction:
    def test_click_at(self):
        action = parse_action("clickAt", "100, 200")
        assert action == ClickAt(x=100, y=200)
        assert action.value == "100,200"

    def test_click_at_malformed(self):
        with pytest.raises(ActionParseError):
            parse_action("click_at", "abc")

    def test_click_at_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_action("click_at", "12")

    def test_click_defaults_to_left(self):
        assert parse_action("click", "") == Click(button="left")
        assert parse_action("click", "Right") == Click(button="right")

    def test_type_keeps_text_verbatim(self):
        action = parse_action("type", "  Hello, World  ")
        assert action == TypeText(text="  Hello, World  ")

    def test_press_defaults_to_enter(self):
        assert parse_action("press", "") == PressKey(key="enter")

    def test_key_combo(self):
        action = parse_action("keyCombo", "Control + S")
        assert action == KeyCombo(keys=("control", "s"))
        assert action.value == "control+s"

    def test_scroll_direction(self):
        assert parse_action("scroll", "up").direction == "up"
        assert parse_action("scroll", "down a bit").direction == "down"
        assert parse_action("scroll", "up 5") == Scroll(direction="up", amount=5)

    def test_wait_seconds(self):
        assert parse_action("wait", "1.5") == Wait(seconds=1.5)
        assert parse_action("wait", "") == Wait(seconds=2.0)

    def test_task(self):
        assert parse_action("task", "open notepad") == RunTask(instruction="open notepad")

    def test_unknown_kind_becomes_raw(self):
        action = parse_action("teleport", "mars")
        assert action == RawAction(kind="teleport", value="mars")

    def test_compound_value_splits_on_first_pipe(self):
        action = parse_action("write_file", "notes.txt|a|b")
        assert action == WriteFile(path="notes.txt", content="a|b")

    def test_browse_and_ask_without_site(self):
        action = parse_action("browse_and_ask", "what is rust?")
        assert action == BrowseAndAsk(site="perplexity", question="what is rust?")

    def test_empty_required_value(self):
        with pytest.raises(ActionParseError):
            parse_action("open_app", "  ")


class TestParseStepAction:
    def test_type_params(self):
        assert parse_step_action("open_app:notepad") == OpenApp(name="notepad")

    def test_params_with_colon(self):
        assert parse_step_action("run_shell:echo a:b") == RunShell(command="echo a:b")

    def test_chat_is_note(self):
        assert parse_step_action("chat:do something") == Note(text="do something")


class TestActionDicts:
    def test_to_dict(self):
        assert action_to_dict(KeyCombo(keys=("control", "s"))) == {
            "type": "key_combo",
            "keys": ["control", "s"],
        }

    def test_raw_to_dict(self):
        assert action_to_dict(RawAction(kind="teleport", value="mars")) == {
            "type": "teleport",
            "value": "mars",
        }

    def test_from_field_dict(self):
        assert action_from_dict({"type": "click_at", "x": 5, "y": 6}) == ClickAt(x=5, y=6)

    def test_from_flat_value_dict(self):
        assert action_from_dict({"type": "keyCombo", "value": "alt+f4"}) == KeyCombo(keys=("alt", "f4"))

    def test_keys_as_string(self):
        assert action_from_dict({"type": "key_combo", "keys": "Control+C"}) == KeyCombo(keys=("control", "c"))

    def test_missing_fields(self):
        with pytest.raises(ActionParseError):
            action_from_dict({"type": "click_at", "x": 5})

    def test_numeric_strings_coerced(self):
        assert action_from_dict({"type": "wait", "seconds": "2"}) == Wait(seconds=2.0)
        assert action_from_dict({"type": "click_at", "x": "120", "y": 340}) == ClickAt(x=120, y=340)
        assert isinstance(action_from_dict({"type": "wait", "seconds": "2"}).seconds, float)

    def test_uncoercible_fields(self):
        with pytest.raises(ActionParseError):
            action_from_dict({"type": "wait", "seconds": "soon"})
        with pytest.raises(ActionParseError):
            action_from_dict({"type": "click_at", "x": [1], "y": 2})
        with pytest.raises(ActionParseError):
            action_from_dict({"type": "scroll", "amount": True})
        with pytest.raises(ActionParseError):
            action_from_dict({"type": "key_combo", "keys": 5})

    def test_round_trip_write_file(self):
        action = WriteFile(path="a.txt", content="x|y")
        assert action_from_dict(action_to_dict(action)) == action


class TestDescribeAction:
    def test_with_value(self):
        assert describe_action(ClickAt(x=1, y=2)) == "click_at: 1,2"

    def test_without_value(self):
        assert describe_action(parse_action("screenshot")) == "screenshot"
