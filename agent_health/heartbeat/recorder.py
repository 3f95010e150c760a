"""Write-side of the report: record one agent's heartbeat.

Each agent only ever touches its own section. The first heartbeat also
stamps an uptime anchor once its section is written; the anchor is kept
until someone deletes it.
"""

from datetime import datetime
from typing import Callable

from agent_health.monitor.staleness import humanize_minutes, stale_minutes
from agent_health.monitor.timestamps import format_timestamp, now_in
from agent_health.report.document import CHANNEL, LAST_PING, MODEL, UPTIME, is_valid_agent_name
from agent_health.report.store import ReportStore
from agent_health.shared.errors import InvalidAgentNameError
from agent_health.shared.logger import get_agent_logger
from agent_health.shared.state import StateStore


def uptime_key(agent: str) -> str:
    return f"{agent}-uptime-start"


class HeartbeatRecorder:
    """Upsert an agent's report section with a fresh Last Ping."""

    def __init__(
        self,
        store: ReportStore,
        uptime_store: StateStore,
        clock: Callable[[], datetime] | None = None,
        known_agents: list[str] | None = None,
    ):
        self._store = store
        self._uptime = uptime_store
        self._clock = clock or now_in
        self._known_agents = known_agents
        self.logger = get_agent_logger("heartbeat")

    def uptime_anchor(self, agent: str, now: datetime) -> datetime | None:
        """Return the stored first-contact instant, or None if there is none."""
        raw = self._uptime.get(uptime_key(agent))
        if raw is None:
            return None
        try:
            return datetime.fromtimestamp(int(raw), tz=now.tzinfo)
        except ValueError:
            self.logger.warning(f"Resetting unreadable uptime anchor for {agent}: {raw!r}")
            return None

    def record(
        self,
        agent: str,
        label: str,
        model: str,
        channel: str,
        now: datetime | None = None,
    ) -> bool:
        """Record a heartbeat; returns False when the report lock timed out.

        Raises:
            InvalidAgentNameError: If ``agent`` cannot be used as a section name.
        """
        if not is_valid_agent_name(agent):
            raise InvalidAgentNameError(agent)
        if self._known_agents is not None and agent not in self._known_agents:
            self.logger.warning(f"Heartbeat from {agent}, which is not in known_agents; it will not be monitored")

        now = now or self._clock()
        anchor = self.uptime_anchor(agent, now)
        started = anchor or now
        stamp = format_timestamp(now)
        uptime = f"{humanize_minutes(stale_minutes(now, started))} (since {format_timestamp(started)})"

        updated = self._store.upsert_agent_section(
            agent,
            label,
            {
                LAST_PING: stamp,
                MODEL: model,
                CHANNEL: channel,
                UPTIME: uptime,
            },
            updated_at=stamp,
        )
        if updated:
            if anchor is None:
                self._uptime.set(uptime_key(agent), str(int(now.timestamp())))
            self.logger.info(
                f"Heartbeat recorded for {agent}",
                extra={"agent_data": {"agent": agent, "model": model, "channel": channel, "last_ping": stamp}},
            )
        return updated
