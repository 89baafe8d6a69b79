"""Event polling with deduplication.

The poller never raises on source failures: the polling loop itself is the
retry mechanism, so a failed fetch yields an empty cycle and the next tick
tries again. Repeated failures escalate log severity so an outage is
distinguishable from a quiet camera.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable

from core.config import PollerConfig
from core.dedup import SeenEvents
from core.models import Event
from core.ports import EventSourcePort

LOGGER = logging.getLogger(__name__)


class EventPoller:
    """Fetch events from a source and hand out only the unseen ones.

    Returned events are *pending* until ``acknowledge`` (delivered) or
    ``release`` (delivery crashed, retry next cycle) is called. Pending events
    are never returned twice, even when the source repeats them.
    """

    def __init__(
        self,
        source: EventSourcePort,
        config: PollerConfig,
        clock: Callable[[], float] = time.time,
        name: str = "events",
    ) -> None:
        self._source = source
        self._config = config
        self._seen = SeenEvents(config.retention_cycles)
        self._pending: set[str] = set()
        self._name = name
        self._after = clock() - config.lookback_seconds
        self.consecutive_failures = 0

    def _params(self) -> dict[str, Any]:
        return {
            "limit": self._config.limit,
            "in_progress": 1 if self._config.in_progress else 0,
            "after": int(self._after),
        }

    def _report_failure(self, exc: Exception) -> None:
        self.consecutive_failures += 1
        level = logging.WARNING
        if self.consecutive_failures >= self._config.failure_escalation:
            level = logging.ERROR
        LOGGER.log(
            level,
            "Fetching %s failed (%s in a row): %s",
            self._name,
            self.consecutive_failures,
            exc,
        )

    async def fetch_new_events(self) -> list[Event]:
        """Fetch once and return events that are neither seen nor pending."""

        try:
            events = await self._source.fetch_events(self._params())
        except Exception as exc:
            self._report_failure(exc)
            return []

        if self.consecutive_failures:
            LOGGER.info(
                "Fetching %s recovered after %s failed attempts",
                self._name,
                self.consecutive_failures,
            )
            self.consecutive_failures = 0

        self._seen.observe(event.event_id for event in events)

        fresh: list[Event] = []
        batch_ids: set[str] = set()
        for event in events:
            event_id = event.event_id
            if event_id in self._seen or event_id in self._pending or event_id in batch_ids:
                continue
            batch_ids.add(event_id)
            fresh.append(event)

        self._pending.update(batch_ids)
        if fresh:
            LOGGER.debug("Fetched %s new %s (of %s)", len(fresh), self._name, len(events))
        return fresh

    def acknowledge(self, events: Iterable[Event]) -> None:
        """Mark events as delivered so they are never returned again."""

        event_ids = [event.event_id for event in events]
        self._pending.difference_update(event_ids)
        self._seen.mark(event_ids)

    def release(self, events: Iterable[Event]) -> None:
        """Return events to the unseen pool so the next cycle retries them."""

        self._pending.difference_update(event.event_id for event in events)

    @property
    def pending_count(self) -> int:
        return len(self._pending)
