"""Per-destination event delivery.

Each destination is delivered independently: a failing chat is logged and
reported but never stops delivery to the others. Destinations run in
parallel while events keep fetch order within one destination.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional, Sequence

from core.models import ChatId, DeliveryReport, Event, Notification
from core.ports import MessengerPort, PreferenceStorePort

LOGGER = logging.getLogger(__name__)

Formatter = Callable[[Event], str]


class Notifier:
    """Format events and send them to every enabled destination."""

    def __init__(
        self,
        store: PreferenceStorePort,
        messenger: MessengerPort,
        formatter: Formatter,
    ) -> None:
        self._store = store
        self._messenger = messenger
        self._formatter = formatter

    def plan(
        self,
        events: Sequence[Event],
        chat_id: ChatId,
        report: Optional[DeliveryReport] = None,
    ) -> list[Notification]:
        """Resolve the notifications for one destination (empty if disabled).

        An event the formatter cannot render is logged, recorded in the report
        and skipped; the rest of the batch still goes out.
        """

        preference = self._store.get(chat_id)
        if not preference.enabled:
            return []
        notifications = []
        for event in events:
            try:
                text = self._formatter(event)
            except Exception as exc:
                LOGGER.error("Failed to format event %s for %s: %s", event.event_id, chat_id, exc)
                if report is not None:
                    report.failed[chat_id] = f"event {event.event_id}: {exc}"
                continue
            notifications.append(
                Notification(chat_id=chat_id, event=event, text=text, silent=preference.silent)
            )
        return notifications

    async def _deliver_to(self, notifications: list[Notification], report: DeliveryReport) -> None:
        for notification in notifications:
            try:
                await self._messenger.send_message(
                    notification.chat_id,
                    notification.text,
                    silent=notification.silent,
                )
            except Exception as exc:
                # Keep going: later events for this chat may still succeed.
                LOGGER.error(
                    "Failed to deliver event %s to %s: %s",
                    notification.event.event_id,
                    notification.chat_id,
                    exc,
                )
                report.failed[notification.chat_id] = str(exc) or type(exc).__name__
                continue
            report.sent += 1

    async def deliver(self, events: Sequence[Event], destinations: Iterable[ChatId]) -> DeliveryReport:
        """Deliver a batch of events to all destinations and report the outcome."""

        report = DeliveryReport()
        if not events:
            return report

        batches: list[list[Notification]] = []
        for chat_id in dict.fromkeys(destinations):
            if not self._store.get(chat_id).enabled:
                report.skipped.append(chat_id)
                continue
            notifications = self.plan(events, chat_id, report)
            if not notifications:
                continue
            batches.append(notifications)

        await asyncio.gather(*(self._deliver_to(batch, report) for batch in batches))

        if report.skipped:
            LOGGER.debug("Notifications disabled for %s", report.skipped)
        LOGGER.info(
            "Delivered %s event(s): sent=%s skipped=%s failed=%s",
            len(events),
            report.sent,
            len(report.skipped),
            len(report.failed),
        )
        return report
