"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the event source, the messenger and
the preference store so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from core.models import ChatId, ChatPreference, Event


class EventSourceError(RuntimeError):
    """Raised by event sources when events cannot be fetched or parsed."""


class EventSourcePort(Protocol):
    """Event source operations required by the poller."""

    async def fetch_events(self, params: Mapping[str, Any]) -> list[Event]:
        ...


class MessengerPort(Protocol):
    """Outbound messaging operations required by the notifier and commands."""

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        *,
        silent: bool = False,
        buttons: Optional[Sequence[Sequence[tuple[str, str]]]] = None,
    ) -> None:
        ...


class PreferenceStorePort(Protocol):
    """Per-chat preference operations required by the core."""

    def get(self, chat_id: ChatId) -> ChatPreference:
        ...

    def update(
        self,
        chat_id: ChatId,
        *,
        enabled: Optional[bool] = None,
        silent: Optional[bool] = None,
    ) -> ChatPreference:
        ...
