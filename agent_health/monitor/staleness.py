"""Classify agents by how long ago they last pinged."""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Classification(Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"

    @property
    def emoji(self) -> str:
        return STATUS_EMOJI[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def degraded(self) -> bool:
        return self in (Classification.WARNING, Classification.CRITICAL)


STATUS_EMOJI = {
    Classification.UNKNOWN: "⚪",
    Classification.HEALTHY: "🟢",
    Classification.WARNING: "🟡",
    Classification.CRITICAL: "🔴",
}


@dataclass
class Staleness:
    classification: Classification
    minutes: int

    def to_dict(self) -> dict:
        return {"classification": self.classification.value, "minutes": self.minutes}


def stale_minutes(now: datetime, last_ping: datetime) -> int:
    """Whole minutes between ``last_ping`` and ``now``; future pings count as 0."""
    seconds = (now - last_ping).total_seconds()
    return max(0, math.floor(seconds / 60))


def classify_minutes(minutes: int, warning_minutes: int = 30, critical_minutes: int = 60) -> Classification:
    """Map a staleness in minutes to a classification.

    Thresholds are exclusive: exactly ``warning_minutes`` is still healthy.
    """
    if minutes > critical_minutes:
        return Classification.CRITICAL
    elif minutes > warning_minutes:
        return Classification.WARNING
    return Classification.HEALTHY


def classify(
    now: datetime,
    last_ping: datetime | None,
    warning_minutes: int = 30,
    critical_minutes: int = 60,
) -> Staleness:
    """Classify an agent; a missing or unparseable ping is Unknown."""
    if last_ping is None:
        return Staleness(Classification.UNKNOWN, 0)
    minutes = stale_minutes(now, last_ping)
    return Staleness(classify_minutes(minutes, warning_minutes, critical_minutes), minutes)


def humanize_minutes(minutes: int) -> str:
    """``45`` -> ``45m``; ``125`` -> ``2h 5m``."""
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes}m"
