"""Frigate HTTP API event source.

Maps Frigate's /api/events records to core Event objects. Every failure
(transport, HTTP status, JSON or record shape) surfaces as EventSourceError
so the poller can treat them uniformly.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from core.models import Event
from core.ports import EventSourceError

LOGGER = logging.getLogger(__name__)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _sub_label(value: Any) -> Optional[str]:
    # Newer Frigate versions report sub_label as [name, score].
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return str(value) if value else None


def parse_event(record: Mapping[str, Any]) -> Event:
    """Build an Event from one Frigate event record."""

    event_id = record.get("id")
    if not event_id:
        raise EventSourceError(f"Event record without id: {record!r}")

    data = record.get("data") or {}
    score = _optional_float(record.get("top_score"))
    if score is None and isinstance(data, dict):
        score = _optional_float(data.get("top_score", data.get("score")))

    return Event(
        event_id=str(event_id),
        camera=str(record.get("camera") or ""),
        label=str(record.get("label") or ""),
        sub_label=_sub_label(record.get("sub_label")),
        score=score,
        zones=tuple(str(zone) for zone in record.get("zones") or ()),
        start_time=_optional_float(record.get("start_time")),
        end_time=_optional_float(record.get("end_time")),
        has_clip=bool(record.get("has_clip", False)),
        has_snapshot=bool(record.get("has_snapshot", False)),
        raw=dict(record),
    )


class FrigateEventSource:
    """Event source adapter backed by Frigate's REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def events_url(self) -> str:
        return f"{self._base_url}/api/events"

    async def fetch_events(self, params: Mapping[str, Any]) -> list[Event]:
        """Fetch the latest events, in the order Frigate returns them."""

        try:
            response = await self._client.get(self.events_url, params=dict(params))
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise EventSourceError(f"Frigate API error {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise EventSourceError(f"Frigate unreachable: {exc}") from exc
        except ValueError as exc:
            raise EventSourceError(f"Invalid JSON from Frigate: {exc}") from exc

        if not isinstance(payload, list):
            raise EventSourceError(f"Expected a list of events, got {type(payload).__name__}")

        events = []
        for record in payload:
            if not isinstance(record, dict):
                raise EventSourceError(f"Invalid event record: {record!r}")
            events.append(parse_event(record))
        LOGGER.debug("Frigate returned %s event(s)", len(events))
        return events

    async def aclose(self) -> None:
        await self._client.aclose()
