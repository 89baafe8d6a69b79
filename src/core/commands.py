"""Chat command handling (core domain).

Commands are a closed enum mapped through a single table to their state
mutation and reply, so adding a command is a data change. Menu button taps
reuse the reply text of the matching command but never touch state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.models import ChatId, ChatPreference, Reply
from core.ports import PreferenceStorePort

LOGGER = logging.getLogger(__name__)

CALLBACK_PREFIX = "cmd_"

HELP_TEXT = "Available commands:\n/start, /stop, /mute, /unmute, /ping, /pong, /status, /menu, /help"
UNKNOWN_COMMAND_TEXT = "I don't know that command."
UNKNOWN_CALLBACK_TEXT = "Unknown command"
STATUS_TEXT = "I'm ok."

MENU_BUTTONS = (
    (("Ping", f"{CALLBACK_PREFIX}ping"), ("Status", f"{CALLBACK_PREFIX}status")),
    (("Help", f"{CALLBACK_PREFIX}help"),),
)


class Command(Enum):
    START = "start"
    STOP = "stop"
    MUTE = "mute"
    UNMUTE = "unmute"
    PING = "ping"
    PONG = "pong"
    STATUS = "status"
    HELP = "help"
    MENU = "menu"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str) -> "Command":
        """Parse '/Stop@my_bot extra' style input into a command."""

        token = raw.strip().split(maxsplit=1)[0] if raw.strip() else ""
        name = token.lstrip("/").split("@", 1)[0].lower()
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class CommandAction:
    """State mutation and reply for one command."""

    reply: str
    enabled: Optional[bool] = None
    silent: Optional[bool] = None
    show_menu: bool = False
    show_status: bool = False

    @property
    def mutates(self) -> bool:
        return self.enabled is not None or self.silent is not None


COMMAND_TABLE: dict[Command, CommandAction] = {
    Command.START: CommandAction("Notifications enabled.", enabled=True),
    Command.STOP: CommandAction("Notifications disabled.", enabled=False),
    Command.MUTE: CommandAction("Notifications are now silent.", silent=True),
    Command.UNMUTE: CommandAction("Silent mode disabled.", silent=False),
    Command.PING: CommandAction("pong"),
    Command.PONG: CommandAction("ping"),
    Command.STATUS: CommandAction(STATUS_TEXT, show_status=True),
    Command.HELP: CommandAction(HELP_TEXT),
    Command.MENU: CommandAction("Select a command:", show_menu=True),
    Command.UNKNOWN: CommandAction(UNKNOWN_COMMAND_TEXT),
}


def describe_preference(preference: ChatPreference) -> str:
    notifications = "enabled" if preference.enabled else "disabled"
    sound = "silent" if preference.silent else "with sound"
    return f"Notifications: {notifications}, {sound}."


class CommandHandler:
    """Apply inbound commands to the preference store and build replies."""

    def __init__(self, store: PreferenceStorePort) -> None:
        self._store = store

    def _reply_for(self, chat_id: ChatId, action: CommandAction) -> Reply:
        text = action.reply
        if action.show_status:
            text = f"{text}\n{describe_preference(self._store.get(chat_id))}"
        buttons = MENU_BUTTONS if action.show_menu else ()
        return Reply(text=text, buttons=buttons)

    def handle_command(self, chat_id: ChatId, raw: str) -> Reply:
        """Handle a '/command' message from a chat."""

        command = Command.parse(raw)
        action = COMMAND_TABLE[command]
        if action.mutates:
            try:
                self._store.update(chat_id, enabled=action.enabled, silent=action.silent)
            except OSError:
                # The in-memory change is kept; durability returns on the next save.
                LOGGER.exception("Failed to persist /%s for chat %s", command.value, chat_id)
            LOGGER.info("Chat %s: /%s", chat_id, command.value)
        return self._reply_for(chat_id, action)

    def handle_callback(self, chat_id: ChatId, data: str) -> Reply:
        """Handle a menu button tap; never mutates state."""

        if not data.startswith(CALLBACK_PREFIX):
            return Reply(text=UNKNOWN_CALLBACK_TEXT)
        command = Command.parse(data[len(CALLBACK_PREFIX):])
        if command is Command.UNKNOWN:
            return Reply(text=UNKNOWN_CALLBACK_TEXT)
        action = COMMAND_TABLE[command]
        return Reply(text=self._reply_for(chat_id, action).text)
