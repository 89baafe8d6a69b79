from __future__ import annotations

import pytest

from adapters.json_state_store import JsonStateStore
from core.commands import (
    COMMAND_TABLE,
    HELP_TEXT,
    MENU_BUTTONS,
    UNKNOWN_CALLBACK_TEXT,
    UNKNOWN_COMMAND_TEXT,
    Command,
    CommandHandler,
)
from core.models import ChatPreference


class FailingStore:
    """Store whose persistence always fails after mutating in memory."""

    def __init__(self) -> None:
        self.prefs: dict = {}

    def get(self, chat_id):
        return self.prefs.setdefault(chat_id, ChatPreference())

    def update(self, chat_id, *, enabled=None, silent=None):
        preference = self.get(chat_id)
        if enabled is not None:
            preference.enabled = enabled
        if silent is not None:
            preference.silent = silent
        raise OSError("disk full")


@pytest.fixture
def store(tmp_path) -> JsonStateStore:
    return JsonStateStore.load(str(tmp_path / "state.json"))


def test_every_command_has_an_action() -> None:
    assert set(COMMAND_TABLE) == set(Command)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/start", Command.START),
        ("/STOP", Command.STOP),
        ("/mute@frigram_bot", Command.MUTE),
        ("/unmute now please", Command.UNMUTE),
        ("menu", Command.MENU),
        ("/reboot", Command.UNKNOWN),
        ("", Command.UNKNOWN),
    ],
)
def test_parse(raw: str, expected: Command) -> None:
    assert Command.parse(raw) is expected


@pytest.mark.parametrize(
    "command, field, value, reply",
    [
        ("/start", "enabled", True, "Notifications enabled."),
        ("/stop", "enabled", False, "Notifications disabled."),
        ("/mute", "silent", True, "Notifications are now silent."),
        ("/unmute", "silent", False, "Silent mode disabled."),
    ],
)
def test_state_commands_mutate_and_persist(store, command, field, value, reply) -> None:
    handler = CommandHandler(store)
    store.update(42, **{field: not value})

    result = handler.handle_command(42, command)

    assert result.text == reply
    assert getattr(store.get(42), field) is value
    assert getattr(JsonStateStore.load(store.path).get(42), field) is value


def test_start_stop_sequence_last_command_wins(store) -> None:
    handler = CommandHandler(store)
    for command in ["/stop", "/start", "/stop", "/stop", "/start", "/stop"]:
        handler.handle_command(7, command)

    assert store.get(7).enabled is False
    assert JsonStateStore.load(store.path).get(7).enabled is False


@pytest.mark.parametrize(
    "command, reply",
    [("/ping", "pong"), ("/pong", "ping"), ("/help", HELP_TEXT), ("/whatever", UNKNOWN_COMMAND_TEXT)],
)
def test_reply_only_commands_do_not_mutate(store, command, reply) -> None:
    handler = CommandHandler(store)

    result = handler.handle_command(42, command)

    assert result.text == reply
    assert result.buttons == ()
    assert store.get(42) == ChatPreference(enabled=True, silent=False)


def test_status_reports_chat_preferences(store) -> None:
    handler = CommandHandler(store)
    store.update(3, enabled=False, silent=True)

    result = handler.handle_command(3, "/status")

    assert result.text.startswith("I'm ok.")
    assert "disabled" in result.text
    assert "silent" in result.text


def test_menu_offers_buttons(store) -> None:
    result = CommandHandler(store).handle_command(1, "/menu")

    assert result.text == "Select a command:"
    assert result.buttons == MENU_BUTTONS
    assert [data for row in result.buttons for _, data in row] == ["cmd_ping", "cmd_status", "cmd_help"]


def test_callbacks_reuse_reply_text_without_mutation(store) -> None:
    handler = CommandHandler(store)
    store.update(9, enabled=False)

    assert handler.handle_callback(9, "cmd_ping").text == "pong"
    assert handler.handle_callback(9, "cmd_help").text == HELP_TEXT
    assert handler.handle_callback(9, "cmd_start").text == "Notifications enabled."
    assert handler.handle_callback(9, "cmd_status").text.startswith("I'm ok.")

    assert store.get(9).enabled is False


@pytest.mark.parametrize("data", ["cmd_reboot", "ping", ""])
def test_unknown_callback(store, data: str) -> None:
    result = CommandHandler(store).handle_callback(1, data)

    assert result.text == UNKNOWN_CALLBACK_TEXT


def test_persistence_failure_still_replies() -> None:
    failing = FailingStore()
    handler = CommandHandler(failing)

    result = handler.handle_command(5, "/stop")

    assert result.text == "Notifications disabled."
    assert failing.get(5).enabled is False
