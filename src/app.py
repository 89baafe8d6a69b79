"""Application entry point for the frigram bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Awaitable, Callable, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.frigate_client import FrigateEventSource
from adapters.json_state_store import JsonStateStore
from adapters.notification_formatting import build_formatter
from adapters.telegram_bot import TelegramBotMessenger, register_command_handlers
from client import bot_token, build_client
from core.commands import CommandHandler, describe_preference
from core.config import NotificationConfig, PollerConfig
from core.monitor import EventMonitor
from core.notifier import Notifier
from core.poller import EventPoller

NAME = "FRIGRAM"
FONT = "tarty-1"

RESTART_DELAY_SECONDS = 5.0


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False) and not settings.DEBUG:
        return

    load_dotenv()
    level_name = "DEBUG" if settings.DEBUG else str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/frigram.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    if not settings.DEBUG:
        # Telethon is chatty at INFO; keep its connection noise out of our logs.
        logging.getLogger("telethon").setLevel(logging.WARNING)


async def _supervise(name: str, factory: Callable[[], Awaitable[None]]) -> None:
    """Run a process-lifetime task, restarting it if it ever stops."""

    logger = logging.getLogger(__name__)
    while True:
        try:
            await factory()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.critical("Task %s crashed, restarting in %ss", name, RESTART_DELAY_SECONDS, exc_info=True)
        else:
            logger.critical("Task %s exited unexpectedly, restarting in %ss", name, RESTART_DELAY_SECONDS)
        await asyncio.sleep(RESTART_DELAY_SECONDS)


def _destinations() -> list:
    if settings.CHAT_ID is None:
        raise RuntimeError("telegram.chat_id (or TELEGRAM_CHAT_ID) is required")
    return [settings.CHAT_ID, *settings.EXTRA_CHAT_IDS]


def _poller_config(in_progress: bool) -> PollerConfig:
    return PollerConfig(
        limit=settings.EVENTS_LIMIT,
        in_progress=in_progress,
        lookback_seconds=settings.LOOKBACK_SECONDS,
        retention_cycles=settings.DEDUP_RETENTION_CYCLES,
        failure_escalation=settings.DEDUP_FAILURE_ESCALATION,
    )


async def _send_startup_message(messenger: TelegramBotMessenger, chat_id) -> None:
    text = f"Starting frigram.\nFrigate URL: {settings.FRIGATE_URL}"
    try:
        await messenger.send_message(chat_id, text)
    except Exception:
        logging.getLogger(__name__).exception("Failed to send startup message to %s", chat_id)


async def _shutdown(tasks: list, source: FrigateEventSource) -> None:
    """Cancel the polling tasks, wait for them to unwind, then close HTTP."""

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await source.aclose()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting frigram")
    logger.info("Frigate URL: %s", settings.FRIGATE_URL)

    # Startup errors are fatal: without the bot connection there is no safe
    # degraded mode.
    try:
        destinations = _destinations()
        token = bot_token()
        client = build_client()
        client.start(bot_token=token)
        me = client.loop.run_until_complete(client.get_me())
    except Exception:
        logger.critical("Unable to start the Telegram bot", exc_info=True)
        raise SystemExit(1)
    logger.info("Authorized on account %s", getattr(me, "username", None))

    store = JsonStateStore.load(settings.STATE_PATH)
    notification_config = NotificationConfig(
        mode=settings.NOTIFICATION_FORMAT,
        public_url=settings.FRIGATE_PUBLIC_URL,
    )
    messenger = TelegramBotMessenger(client, mode=settings.NOTIFICATION_FORMAT)
    source = FrigateEventSource(settings.FRIGATE_URL, timeout=settings.REQUEST_TIMEOUT_SECONDS)

    # Commands and the polling loop share nothing but the store.
    register_command_handlers(client, CommandHandler(store), messenger)

    monitor = EventMonitor(
        poller=EventPoller(source, _poller_config(in_progress=False), name="events"),
        notifier=Notifier(store, messenger, build_formatter(notification_config)),
        destinations=destinations,
        name="events",
    )

    loop = client.loop
    if settings.STARTUP_MESSAGE:
        loop.run_until_complete(_send_startup_message(messenger, settings.CHAT_ID))

    tasks = [
        loop.create_task(
            _supervise("events", lambda: monitor.run_forever(settings.POLL_INTERVAL_SECONDS))
        )
    ]

    if settings.IN_PROGRESS_ENABLED:
        in_progress_monitor = EventMonitor(
            poller=EventPoller(source, _poller_config(in_progress=True), name="in-progress events"),
            notifier=Notifier(store, messenger, build_formatter(notification_config, started=True)),
            destinations=destinations,
            name="in-progress events",
        )
        tasks.append(
            loop.create_task(
                _supervise(
                    "in-progress events",
                    lambda: in_progress_monitor.run_forever(settings.IN_PROGRESS_INTERVAL_SECONDS),
                )
            )
        )
        logger.info("In-progress notifications enabled")

    logger.info("Bot connected. Listening for commands and polling Frigate...")
    try:
        client.run_until_disconnected()
    finally:
        loop.run_until_complete(_shutdown(tasks, source))


def _show_state() -> None:
    store = JsonStateStore.load(settings.STATE_PATH)
    states = store.snapshot()
    if not states:
        print(f"No chats stored in {store.path}")
        return
    for chat_id, preference in states.items():
        print(f"{chat_id}: {describe_preference(preference)}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="frigram")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bridge")
    subparsers.add_parser("state", help="Show stored per-chat preferences")

    args = parser.parse_args(argv)
    if args.command == "state":
        _show_state()
        return
    _run()


if __name__ == "__main__":
    main()
