"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel. Formatters are pure functions of
the event so the notifier can call them once per destination.
"""

from __future__ import annotations

import html
from datetime import datetime
from functools import partial
from typing import Callable, Optional

from core.config import NotificationConfig
from core.models import Event

DIVIDER = "──────────────"


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown"
    return value.astimezone().strftime("%H:%M:%S %d-%m-%Y")


def _duration(event: Event) -> Optional[str]:
    if event.start_time is None or event.end_time is None:
        return None
    seconds = max(0, int(round(event.end_time - event.start_time)))
    minutes, seconds = divmod(seconds, 60)
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def describe_object(event: Event) -> str:
    """Return 'person (Alice) 87%' style object description."""

    label = (event.label or "object").replace("_", " ")
    if event.sub_label:
        label = f"{label} ({event.sub_label})"
    if event.score is not None:
        label = f"{label} {event.score:.0%}"
    return label


def event_links(event: Event, public_url: str) -> list[tuple[str, str]]:
    """Return (title, url) links to the event media on the Frigate UI/API."""

    if not public_url:
        return []
    base = public_url.rstrip("/")
    links = []
    if event.has_clip:
        links.append(("Clip", f"{base}/api/events/{event.event_id}/clip.mp4"))
    if event.has_snapshot:
        links.append(("Snapshot", f"{base}/api/events/{event.event_id}/snapshot.jpg"))
    return links


def _format_markdown(event: Event, public_url: str, started: bool) -> str:
    """Create the Markdown notification body."""

    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    title = "Detected" if started else "Event"
    lines = [
        f"[{_format_time(event.started_at)}]",
        f"**{title}:** {escape_md(describe_object(event))}",
        f"**Camera:** {escape_md(event.camera or 'unknown')}",
    ]
    if event.zones:
        lines.append(f"**Zones:** {escape_md(', '.join(event.zones))}")
    duration = _duration(event)
    if duration and not started:
        lines.append(f"**Duration:** {duration}")
    for name, url in event_links(event, public_url):
        lines.append(f"[{name}]({url})")
    lines.append(DIVIDER)
    return "\n".join(lines)


def _format_html(event: Event, public_url: str, started: bool) -> str:
    """Create the HTML notification body used with parse_mode='html'."""

    title = "Detected" if started else "Event"
    parts = [
        f"[{html.escape(_format_time(event.started_at))}]",
        f"<b>{title}:</b> {html.escape(describe_object(event))}",
        f"<b>Camera:</b> {html.escape(event.camera or 'unknown')}",
    ]
    if event.zones:
        parts.append(f"<b>Zones:</b> {html.escape(', '.join(event.zones))}")
    duration = _duration(event)
    if duration and not started:
        parts.append(f"<b>Duration:</b> {duration}")
    for name, url in event_links(event, public_url):
        safe_url = html.escape(url)
        parts.append(f"<a href=\"{safe_url}\">{name}</a>")
    parts.append(DIVIDER)
    return "\n".join(parts)


def format_event(event: Event, mode: str, public_url: str = "", started: bool = False) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(event, public_url, started)
    if mode == "html":
        return _format_html(event, public_url, started)
    raise ValueError(f"Unsupported notification format: {mode}")


def build_formatter(config: NotificationConfig, started: bool = False) -> Callable[[Event], str]:
    """Bind formatting options into a one-argument formatter for the notifier."""

    if config.mode not in {"markdown", "html"}:
        raise ValueError(f"Unsupported notification format: {config.mode}")
    return partial(format_event, mode=config.mode, public_url=config.public_url, started=started)
