"""Telegram bot adapter.

Wraps a Telethon client logged in as a bot: outbound messages for the
notifier and the command replies, plus the inbound command and menu-button
handlers. Telethon-specific types stay in this module.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from telethon import Button, TelegramClient, events

from core.commands import CommandHandler
from core.models import ChatId, Reply

LOGGER = logging.getLogger(__name__)

_PARSE_MODES = {"html": "html", "markdown": "md"}


def build_buttons(rows: Sequence[Sequence[tuple[str, str]]]) -> Optional[list[list[Button]]]:
    """Convert (label, data) rows into Telethon inline buttons."""

    if not rows:
        return None
    return [[Button.inline(label, data.encode("utf-8")) for label, data in row] for row in rows]


class TelegramBotMessenger:
    """Messenger adapter that sends messages through the bot account."""

    def __init__(self, client: TelegramClient, mode: str = "html") -> None:
        self._client = client
        self._parse_mode = _PARSE_MODES.get(mode, "html")

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        *,
        silent: bool = False,
        buttons: Optional[Sequence[Sequence[tuple[str, str]]]] = None,
    ) -> None:
        """Send a message, honoring the chat's silent flag."""

        await self._client.send_message(
            chat_id,
            text,
            parse_mode=self._parse_mode,
            silent=silent,
            buttons=build_buttons(buttons or ()),
            link_preview=False,
        )


async def send_reply(messenger: TelegramBotMessenger, chat_id: ChatId, reply: Reply) -> None:
    # Replies are plain status text; a failed reply must not stop the handler.
    try:
        await messenger.send_message(chat_id, reply.text, buttons=reply.buttons)
    except Exception:
        LOGGER.exception("Error sending reply to chat %s", chat_id)


def register_command_handlers(
    client: TelegramClient,
    handler: CommandHandler,
    messenger: TelegramBotMessenger,
) -> None:
    """Attach /command and menu-button handlers to the client."""

    @client.on(events.NewMessage(incoming=True, pattern=r"^/\w+"))
    async def on_command(event) -> None:
        try:
            reply = handler.handle_command(event.chat_id, event.raw_text or "")
        except Exception:
            LOGGER.exception("Error while handling command %r", event.raw_text)
            return
        await send_reply(messenger, event.chat_id, reply)

    @client.on(events.CallbackQuery())
    async def on_callback(event) -> None:
        data = (event.data or b"").decode("utf-8", errors="replace")
        # Telegram shows a spinner on the button until the tap is answered.
        try:
            await event.answer()
        except Exception:
            LOGGER.exception("Error answering callback %r", data)
        try:
            reply = handler.handle_callback(event.chat_id, data)
        except Exception:
            LOGGER.exception("Error while handling callback %r", data)
            return
        await send_reply(messenger, event.chat_id, reply)

    LOGGER.info("Command handlers registered")
