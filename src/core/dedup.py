"""Deduplication helpers (core domain)."""

from __future__ import annotations

from typing import Iterable


class SeenEvents:
    """Windowed set of event ids that were already delivered.

    Every poll cycle calls ``observe`` with the ids the source returned. An id
    stays remembered while the source keeps reporting it and is forgotten only
    after ``retention_cycles`` consecutive cycles without being observed, so
    the set stays bounded by what the source can still return.
    """

    def __init__(self, retention_cycles: int = 100) -> None:
        if retention_cycles < 1:
            raise ValueError("retention_cycles must be at least 1")
        self._retention = retention_cycles
        self._cycle = 0
        # event_id -> last cycle the id was observed or marked
        self._last_seen: dict[str, int] = {}

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._last_seen

    def __len__(self) -> int:
        return len(self._last_seen)

    def observe(self, event_ids: Iterable[str]) -> None:
        """Start a new cycle, refresh known ids and evict stale ones."""

        self._cycle += 1
        for event_id in event_ids:
            if event_id in self._last_seen:
                self._last_seen[event_id] = self._cycle

        cutoff = self._cycle - self._retention
        stale = [event_id for event_id, cycle in self._last_seen.items() if cycle <= cutoff]
        for event_id in stale:
            del self._last_seen[event_id]

    def mark(self, event_ids: Iterable[str]) -> None:
        for event_id in event_ids:
            self._last_seen[event_id] = self._cycle
