import pytest

from inkobot.callbacks import (
    Action,
    CallbackError,
    decode_callback,
    encode_callback,
    pagination_keyboard,
    parse_callback,
)
from inkobot.sessions import Mode


@pytest.mark.parametrize("command", [
    "192.168.59.75 5 full",
    "192.168.59.75 5 short clear",
    "Main st.  1 3",
    "",
])
def test_command_keeps_its_spaces(command):
    data = encode_callback(Mode.RAW, Action.EDIT, command)
    payload = decode_callback(data)
    assert payload.mode == "raw"
    assert payload.action == "edit"
    assert payload.command == command


def test_encode_uses_plain_values():
    assert encode_callback(Mode.SEARCH, Action.SEND, "abc 2") == "search send abc 2"
    assert encode_callback("raw", "edit", "x") == "raw edit x"


def test_decode_rejects_missing_fields():
    with pytest.raises(CallbackError):
        decode_callback("raw edit")
    with pytest.raises(CallbackError):
        decode_callback("")


def test_parse_returns_enums():
    mode, action, command = parse_callback("search edit d-link 3")
    assert mode is Mode.SEARCH
    assert action is Action.EDIT
    assert command == "d-link 3"


@pytest.mark.parametrize("data", [
    "bogus edit 1.2.3.4",
    "admin edit list",
    "ping send 8.8.8.8",
    "raw delete 1.2.3.4 5",
])
def test_parse_rejects_unknown_mode_or_action(data):
    with pytest.raises(CallbackError):
        parse_callback(data)


def labels(keyboard):
    return [label for label, _ in keyboard[0]]


def test_pagination_single_page_has_no_buttons():
    assert pagination_keyboard("dlink", 1, 1) == []
    assert pagination_keyboard("dlink", 1, 0) == []


def test_pagination_first_page():
    keyboard = pagination_keyboard("dlink", 1, 5)
    assert labels(keyboard) == ["›", "»"]
    assert keyboard[0][0][1] == "search edit dlink 2"
    assert keyboard[0][1][1] == "search edit dlink 5"


def test_pagination_middle_page():
    keyboard = pagination_keyboard("dlink", 3, 5)
    assert labels(keyboard) == ["«", "‹", "›", "»"]
    assert [value for _, value in keyboard[0]] == [
        "search edit dlink 1",
        "search edit dlink 2",
        "search edit dlink 4",
        "search edit dlink 5",
    ]


def test_pagination_last_page():
    assert labels(pagination_keyboard("dlink", 5, 5)) == ["«", "‹"]


def test_pagination_neighbours_skip_redundant_jumps():
    assert labels(pagination_keyboard("dlink", 2, 3)) == ["‹", "›"]


def test_pagination_buttons_decode_back():
    keyboard = pagination_keyboard("Main st. 1", 2, 4)
    for _, value in keyboard[0]:
        mode, action, command = parse_callback(value)
        assert mode is Mode.SEARCH
        assert action is Action.EDIT
        assert command.startswith("Main st. 1 ")
