"""Heartbeat timestamp parsing and formatting.

Heartbeats are stamped as ``2026-02-13T09:30:00 EST``. The trailing zone
abbreviation is cosmetic: it is dropped on parse and the wall-clock time is
read in the configured zone (or the host's zone). Two zones that share an
abbreviation are therefore not told apart.
"""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
NO_DATA = "_No data_"


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the zone for an IANA name, or None to use the host zone."""
    if not name:
        return None
    return ZoneInfo(name)


def now_in(tz: tzinfo | None = None) -> datetime:
    """Current aware instant in ``tz`` (host zone when None)."""
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz)


def parse_timestamp(text: str | None, tz: tzinfo | None = None) -> datetime | None:
    """Parse a heartbeat timestamp into an aware datetime.

    Returns None for empty, sentinel or malformed input; never raises.
    """
    if not text:
        return None
    parts = text.strip().split()
    if not parts or len(parts) > 2 or parts[0] == NO_DATA:
        return None

    try:
        naive = datetime.strptime(parts[0], TIMESTAMP_FORMAT)
    except ValueError:
        return None

    if tz is not None:
        return naive.replace(tzinfo=tz)
    try:
        return naive.astimezone()
    except (OverflowError, OSError):
        return None


def format_timestamp(instant: datetime) -> str:
    """Render ``instant`` as ``YYYY-MM-DDTHH:MM:SS TZ``."""
    zone = instant.tzname() or ""
    return f"{instant.strftime(TIMESTAMP_FORMAT)} {zone}".rstrip()
