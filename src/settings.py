"""Static configuration for frigram.

All user-editable settings (Frigate, chats, dedup, state file, logging) live
in a single JSON file for quick edits without touching Python. Secrets stay
in .env and are read by client.py.

A few environment variables override config.json so existing container
deployments keep working: FRIGATE_URL, TELEGRAM_CHAT_ID, SLEEP_TIME,
SEND_TEXT_EVENT, DEBUG.
"""

import json
import os

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("FRIGRAM_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_chat_id(value):
    """Chat ids are integers for Telegram; keep @usernames as strings."""

    # 0 is the placeholder shipped in config.json.
    if value is None or str(value).strip() in {"", "0"}:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return str(value)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


load_dotenv()

_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Frigate connection and polling.
# - FRIGATE_URL: base URL used for API calls
# - FRIGATE_PUBLIC_URL: base URL used for links in messages
_frigate = _CONFIG.get("frigate", {})
FRIGATE_URL = (os.getenv("FRIGATE_URL") or _frigate.get("url", "http://localhost:5000")).rstrip("/")
FRIGATE_PUBLIC_URL = (_frigate.get("public_url") or FRIGATE_URL).rstrip("/")
POLL_INTERVAL_SECONDS = int(os.getenv("SLEEP_TIME") or _frigate.get("poll_interval_seconds", 30))
EVENTS_LIMIT = int(_frigate.get("events_limit", 25))
LOOKBACK_SECONDS = int(_frigate.get("lookback_seconds", 0))
REQUEST_TIMEOUT_SECONDS = float(_frigate.get("request_timeout_seconds", 10))

# In-progress notifications send a short "detected" message when an event
# starts, in addition to the full message once it ends.
_in_progress = _frigate.get("in_progress", {})
IN_PROGRESS_ENABLED = _env_flag("SEND_TEXT_EVENT", bool(_in_progress.get("enabled", False)))
IN_PROGRESS_INTERVAL_SECONDS = int(_in_progress.get("interval_seconds", 10))

# Telegram destinations: the primary chat plus optional extra chats.
_telegram = _CONFIG.get("telegram", {})
CHAT_ID = _parse_chat_id(os.getenv("TELEGRAM_CHAT_ID") or _telegram.get("chat_id"))
EXTRA_CHAT_IDS = [
    chat_id
    for chat_id in (_parse_chat_id(value) for value in _telegram.get("extra_chat_ids", []))
    if chat_id is not None
]
STARTUP_MESSAGE = bool(_telegram.get("startup_message", True))

# Deduplication window for delivered event ids.
# - RETENTION_CYCLES: forget an id after this many polls without seeing it
# - FAILURE_ESCALATION: consecutive fetch failures before logging at ERROR
_dedup = _CONFIG.get("dedup", {})
DEDUP_RETENTION_CYCLES = int(_dedup.get("retention_cycles", 100))
DEDUP_FAILURE_ESCALATION = int(_dedup.get("failure_escalation", 3))

# Per-chat enabled/silent preferences.
STATE_PATH = _resolve_path(_CONFIG.get("state", {}).get("path", "bot_state.json"))

# Notification body format: "html" or "markdown".
NOTIFICATION_FORMAT = _CONFIG.get("notifications", {}).get("format", "html")

DEBUG = _env_flag("DEBUG", bool(_CONFIG.get("debug", False)))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
