from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import pytest

from core.config import PollerConfig
from core.dedup import SeenEvents
from core.models import Event
from core.ports import EventSourceError
from core.poller import EventPoller


class FakeSource:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def fetch_events(self, params: Mapping[str, Any]) -> list[Event]:
        self.calls.append(dict(params))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return list(response)


def _events(*ids: str) -> list[Event]:
    return [Event(event_id=event_id, camera="yard", label="person") for event_id in ids]


def _poller(source: FakeSource, **overrides) -> EventPoller:
    return EventPoller(source, PollerConfig(**overrides), clock=lambda: 1_000.0)


def test_same_response_twice_yields_event_once() -> None:
    source = FakeSource(_events("a", "b"))
    poller = _poller(source)

    first = asyncio.run(poller.fetch_new_events())
    second = asyncio.run(poller.fetch_new_events())

    assert [event.event_id for event in first] == ["a", "b"]
    assert second == []


def test_acknowledged_events_are_not_returned_again() -> None:
    source = FakeSource(_events("a"), _events("a", "b"))
    poller = _poller(source)

    first = asyncio.run(poller.fetch_new_events())
    poller.acknowledge(first)
    second = asyncio.run(poller.fetch_new_events())

    assert [event.event_id for event in second] == ["b"]
    assert poller.pending_count == 1


def test_released_events_are_retried() -> None:
    source = FakeSource(_events("a"))
    poller = _poller(source)

    first = asyncio.run(poller.fetch_new_events())
    poller.release(first)
    retried = asyncio.run(poller.fetch_new_events())

    assert [event.event_id for event in retried] == ["a"]


def test_keeps_source_order_and_drops_duplicates_within_batch() -> None:
    source = FakeSource(_events("c", "a", "c", "b"))
    poller = _poller(source)

    events = asyncio.run(poller.fetch_new_events())

    assert [event.event_id for event in events] == ["c", "a", "b"]


def test_fetch_failure_returns_empty_and_escalates(caplog) -> None:
    source = FakeSource(
        EventSourceError("down"),
        EventSourceError("down"),
        EventSourceError("down"),
        _events("a"),
    )
    poller = _poller(source, failure_escalation=3)

    with caplog.at_level(logging.INFO, logger="core.poller"):
        results = [asyncio.run(poller.fetch_new_events()) for _ in range(3)]
        assert poller.consecutive_failures == 3
        recovered = asyncio.run(poller.fetch_new_events())

    assert results == [[], [], []]
    assert [event.event_id for event in recovered] == ["a"]
    assert poller.consecutive_failures == 0
    levels = [record.levelno for record in caplog.records]
    assert levels[:3] == [logging.WARNING, logging.WARNING, logging.ERROR]
    assert "recovered" in caplog.records[-1].getMessage()


def test_unexpected_source_exception_is_contained() -> None:
    source = FakeSource(ValueError("bad payload"))
    poller = _poller(source)

    assert asyncio.run(poller.fetch_new_events()) == []
    assert poller.consecutive_failures == 1


def test_query_parameters() -> None:
    source = FakeSource(_events())
    poller = EventPoller(
        source,
        PollerConfig(limit=10, in_progress=True, lookback_seconds=60),
        clock=lambda: 1_000.5,
    )

    asyncio.run(poller.fetch_new_events())

    assert source.calls == [{"limit": 10, "in_progress": 1, "after": 940}]


def test_seen_ids_retained_while_source_reports_them() -> None:
    seen = SeenEvents(retention_cycles=2)
    seen.observe([])
    seen.mark(["a"])

    for _ in range(5):
        seen.observe(["a"])
    assert "a" in seen

    seen.observe([])
    assert "a" in seen
    seen.observe([])
    assert "a" not in seen
    assert len(seen) == 0


def test_seen_events_rejects_empty_window() -> None:
    with pytest.raises(ValueError):
        SeenEvents(retention_cycles=0)
