"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

ChatId = Union[int, str]


@dataclass
class ChatPreference:
    """Per-chat delivery preferences.

    Instances are shared by reference: the state store hands out the same
    object for a chat id, so mutations are visible to every later lookup.
    """

    enabled: bool = True
    silent: bool = False


@dataclass(frozen=True)
class Event:
    """A single detection event reported by the NVR."""

    event_id: str
    camera: str = ""
    label: str = ""
    sub_label: Optional[str] = None
    score: Optional[float] = None
    zones: tuple[str, ...] = ()
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    has_clip: bool = False
    has_snapshot: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def in_progress(self) -> bool:
        return self.end_time is None

    @property
    def started_at(self) -> Optional[datetime]:
        if self.start_time is None:
            return None
        try:
            return datetime.fromtimestamp(self.start_time, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None


@dataclass(frozen=True)
class Notification:
    """Resolved (chat, event) delivery; never persisted."""

    chat_id: ChatId
    event: Event
    text: str
    silent: bool


@dataclass(frozen=True)
class Reply:
    """Text reply to an inbound command, optionally with menu buttons.

    Buttons are rows of (label, callback data) pairs; the Telegram adapter
    turns them into inline keyboard buttons.
    """

    text: str
    buttons: tuple[tuple[tuple[str, str], ...], ...] = ()


@dataclass
class DeliveryReport:
    """Aggregated outcome of one delivery batch."""

    sent: int = 0
    skipped: list[ChatId] = field(default_factory=list)
    failed: dict[ChatId, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed
