"""Main polling loop.

This module is integration-agnostic. It wires an EventPoller to a Notifier:
fetch, dispatch delivery, sleep. Events are acknowledged to the poller only
after their delivery batch finished, so a crash mid-batch releases them for
the next cycle instead of silently dropping them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from core.models import ChatId, DeliveryReport, Event
from core.notifier import Notifier
from core.poller import EventPoller

LOGGER = logging.getLogger(__name__)


class EventMonitor:
    """Orchestrates polling, delivery and dedup acknowledgement."""

    def __init__(
        self,
        poller: EventPoller,
        notifier: Notifier,
        destinations: Iterable[ChatId],
        name: str = "events",
    ) -> None:
        self._poller = poller
        self._notifier = notifier
        self._destinations = list(dict.fromkeys(destinations))
        self._name = name
        self._inflight: set[asyncio.Task] = set()
        self.cycles = 0

    async def _deliver(self, events: list[Event]) -> DeliveryReport:
        try:
            report = await self._notifier.deliver(events, self._destinations)
        except BaseException:
            self._poller.release(events)
            raise
        self._poller.acknowledge(events)
        return report

    async def run_cycle(self) -> Optional[DeliveryReport]:
        """Run one fetch-and-deliver cycle and wait for delivery to finish."""

        self.cycles += 1
        events = await self._poller.fetch_new_events()
        if not events:
            return None
        return await self._deliver(events)

    def _dispatch(self, events: list[Event]) -> asyncio.Task:
        task = asyncio.ensure_future(self._deliver(events))
        self._inflight.add(task)
        task.add_done_callback(self._on_delivered)
        return task

    def _on_delivered(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Delivery batch for %s crashed, will retry next cycle", self._name, exc_info=exc)

    async def run_forever(self, interval: float) -> None:
        """Poll on a fixed interval without waiting for in-flight deliveries."""

        LOGGER.info(
            "Polling %s every %s seconds for %s destination(s)",
            self._name,
            interval,
            len(self._destinations),
        )
        while True:
            self.cycles += 1
            try:
                events = await self._poller.fetch_new_events()
                if events:
                    self._dispatch(events)
            except Exception:
                LOGGER.exception("Poll cycle for %s failed", self._name)
            LOGGER.debug("Sleeping for %s seconds.", interval)
            await asyncio.sleep(interval)

    async def drain(self) -> None:
        """Wait for all in-flight delivery batches."""

        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
