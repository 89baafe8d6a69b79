"""Telegram client factory for frigram.

We explicitly manage the client's lifecycle (start/run_until_disconnected)
so it is obvious when the bot session is created and when it ends. This
avoids implicit context-manager behavior for a long-running bridge.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_client() -> TelegramClient:
    """Create the Telethon client the bot account logs in with.

    Telegram requires an API_ID/API_HASH pair even for bot sessions; both come
    from .env. The bot token itself is passed to client.start() by the app,
    and the session is cached in "frigram.session" unless SESSION_NAME is set.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "frigram")

    # Without these the bot cannot connect at all.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram bot client")

    return TelegramClient(session_name, int(api_id), api_hash)


def bot_token() -> str:
    """Return the bot token from the environment (BOT_API)."""

    load_dotenv()
    token = os.getenv("BOT_API")
    if not token:
        raise RuntimeError("Missing BOT_API in environment")
    return token
