"""JSON file preference store.

Implements the core PreferenceStorePort with a single indented JSON file so
operators can read (and hand-edit while stopped) the per-chat state.

File shape::

    {"chat_states": {"<chat_id>": {"enabled": true, "silent": false}}}
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Any, Optional

from core.models import ChatId, ChatPreference

LOGGER = logging.getLogger(__name__)


def _decode_chat_id(raw: str) -> ChatId:
    # JSON object keys are always strings; Telegram chat ids are integers.
    try:
        return int(raw)
    except ValueError:
        return raw


class JsonStateStore:
    """Thread-safe chat preference store persisted as JSON."""

    def __init__(self, path: str, chat_states: Optional[dict[ChatId, ChatPreference]] = None) -> None:
        self._path = path
        self._chat_states: dict[ChatId, ChatPreference] = dict(chat_states or {})
        # One re-entrant lock for the whole map; update() calls save() while holding it.
        self._lock = threading.RLock()

    @property
    def path(self) -> str:
        return self._path

    @classmethod
    def load(cls, path: str) -> "JsonStateStore":
        """Load the store from disk; any failure yields an empty store."""

        if not os.path.exists(path):
            LOGGER.info("No state file at %s, starting with empty state", path)
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
            chat_states = cls._parse(raw)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable state file %s: %s", path, exc)
            return cls(path)

        LOGGER.info("Loaded state for %s chat(s) from %s", len(chat_states), path)
        return cls(path, chat_states)

    @staticmethod
    def _parse(raw: Any) -> dict[ChatId, ChatPreference]:
        if not isinstance(raw, dict) or not isinstance(raw.get("chat_states", {}), dict):
            raise ValueError("expected an object with a 'chat_states' object")

        chat_states: dict[ChatId, ChatPreference] = {}
        for key, entry in raw.get("chat_states", {}).items():
            if not isinstance(entry, dict):
                raise ValueError(f"invalid state entry for chat {key}")
            chat_states[_decode_chat_id(key)] = ChatPreference(
                enabled=bool(entry.get("enabled", True)),
                silent=bool(entry.get("silent", False)),
            )
        return chat_states

    def get(self, chat_id: ChatId) -> ChatPreference:
        """Return the shared preference for a chat, creating the default."""

        with self._lock:
            preference = self._chat_states.get(chat_id)
            if preference is not None:
                return preference
            preference = ChatPreference()
            self._chat_states[chat_id] = preference
            try:
                self.save()
            except OSError as exc:
                LOGGER.warning("Could not persist new chat %s: %s", chat_id, exc)
            return preference

    def update(
        self,
        chat_id: ChatId,
        *,
        enabled: Optional[bool] = None,
        silent: Optional[bool] = None,
    ) -> ChatPreference:
        """Mutate a chat's preference and persist the whole map."""

        with self._lock:
            preference = self.get(chat_id)
            if enabled is not None:
                preference.enabled = enabled
            if silent is not None:
                preference.silent = silent
            self.save()
            return preference

    def snapshot(self) -> dict[ChatId, ChatPreference]:
        with self._lock:
            return {
                chat_id: ChatPreference(enabled=pref.enabled, silent=pref.silent)
                for chat_id, pref in self._chat_states.items()
            }

    def _serialize(self) -> dict[str, Any]:
        return {
            "chat_states": {
                str(chat_id): {"enabled": pref.enabled, "silent": pref.silent}
                for chat_id, pref in self._chat_states.items()
            }
        }

    def save(self) -> None:
        """Atomically replace the state file with the current map.

        Writes to a temporary file in the same directory and renames it over
        the target, so readers see either the old or the new file.
        """

        with self._lock:
            payload = json.dumps(self._serialize(), indent=2)
            directory = os.path.dirname(os.path.abspath(self._path))
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.write("\n")
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
