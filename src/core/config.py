"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PollerConfig:
    """Polling and deduplication settings for one event poller."""

    limit: int = 25
    in_progress: bool = False
    lookback_seconds: int = 0
    retention_cycles: int = 100
    failure_escalation: int = 3


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    mode: str = "html"
    public_url: str = ""
