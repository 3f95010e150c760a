"""Minimum spacing between alert batches."""

from agent_health.shared.logger import get_agent_logger
from agent_health.shared.state import StateStore

LAST_ALERT_KEY = "agent-health-last-alert"
DEFAULT_INTERVAL_SECONDS = 1800


def should_alert(now: float, last_alert: float | None, min_interval_seconds: float = DEFAULT_INTERVAL_SECONDS) -> bool:
    """True when no alert was sent yet or the interval has fully elapsed."""
    if last_alert is None:
        return True
    return now - last_alert >= min_interval_seconds


class AlertDebouncer:
    """Persisted last-alert marker plus the ``should_alert`` policy.

    ``mark_sent`` must only follow a successful dispatch so a failed send
    is retried on the next cycle.
    """

    def __init__(self, store: StateStore, min_interval_seconds: float = DEFAULT_INTERVAL_SECONDS):
        self._store = store
        self._interval = min_interval_seconds
        self.logger = get_agent_logger("debounce")

    def last_alert(self) -> float | None:
        raw = self._store.get(LAST_ALERT_KEY)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            self.logger.warning(f"Ignoring corrupt alert marker: {raw!r}")
            return None

    def ready(self, now: float) -> bool:
        last = self.last_alert()
        if should_alert(now, last, self._interval):
            return True
        self.logger.info(f"Alert debounced (last alert {int(now - last)}s ago)")
        return False

    def mark_sent(self, now: float):
        self._store.set(LAST_ALERT_KEY, str(int(now)))
