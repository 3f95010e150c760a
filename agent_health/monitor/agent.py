"""Monitoring cycle: classify every known agent and act on the changes."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable

from agent_health.monitor.debounce import AlertDebouncer
from agent_health.monitor.incidents import IncidentLog
from agent_health.monitor.staleness import Classification, classify, humanize_minutes
from agent_health.monitor.timestamps import NO_DATA, now_in, parse_timestamp, resolve_timezone
from agent_health.monitor.transitions import TransitionDetector, TransitionEvent
from agent_health.report.document import ReportDocument
from agent_health.report.store import ReportStore
from agent_health.shared.alerts import AlertSender, build_alert_sender
from agent_health.shared.config import DEFAULT_CONFIG
from agent_health.shared.errors import ReportNotFoundError
from agent_health.shared.lock import DirectoryLock
from agent_health.shared.logger import get_agent_logger
from agent_health.shared.state import StateStore, build_state_store

REASON_NO_SECTION = "no section in dashboard"
REASON_NO_DATA = "no data"
REASON_INVALID = "invalid timestamp"


@dataclass
class AgentCheck:
    agent: str
    classification: Classification
    minutes: int = 0
    reason: str = ""
    model: str = ""
    channel: str = ""

    @property
    def alert_line(self) -> str:
        c = self.classification
        if c is Classification.UNKNOWN:
            return f"{c.emoji} {self.agent}: {c.label} ({self.reason})"
        return f"{c.emoji} {self.agent}: {c.label} ({humanize_minutes(self.minutes)} since last ping)"

    @property
    def summary(self) -> str:
        if self.classification is Classification.UNKNOWN:
            return f"{self.agent}: Unknown"
        return f"{self.agent}: {humanize_minutes(self.minutes)} since last ping"

    def to_dict(self) -> dict:
        return {
            "agent": self.agent,
            "classification": self.classification.value,
            "minutes": self.minutes,
            "reason": self.reason,
            "model": self.model,
            "channel": self.channel,
        }


@dataclass
class CycleResult:
    checks: list[AgentCheck] = field(default_factory=list)
    incidents: list[TransitionEvent] = field(default_factory=list)
    report_updated: bool = False
    alert_text: str | None = None
    alert_sent: bool = False
    debounced: bool = False

    def check(self, agent: str) -> AgentCheck | None:
        for c in self.checks:
            if c.agent == agent:
                return c
        return None


class HealthMonitor:
    """Reads the report, detects transitions, updates status and alerts."""

    def __init__(
        self,
        config: dict | None = None,
        state_store: StateStore | None = None,
        alert_store: StateStore | None = None,
        alert_sender: AlertSender | None = None,
        clock: Callable[[], datetime] | None = None,
        lock: DirectoryLock | None = None,
        tz: tzinfo | None = None,
    ):
        self.config = {**DEFAULT_CONFIG, **(config or {})}
        self.logger = get_agent_logger("monitor", log_file=self.config.get("log_file"))

        self._tz = tz or resolve_timezone(self.config.get("timezone"))
        self._clock = clock or (lambda: now_in(self._tz))
        self._known_agents = list(self.config["known_agents"])
        self._warning_minutes = self.config["warning_minutes"]
        self._critical_minutes = self.config["critical_minutes"]
        self._alert_on_unknown = self.config["alert_on_unknown"]
        self._check_interval = self.config["check_interval_seconds"]
        self._running = False

        lock = lock or DirectoryLock(self.config["lock_dir"], timeout=self.config["lock_timeout_seconds"])
        self.report = ReportStore(self.config["report_path"], lock)
        self.incidents = IncidentLog(self.config["incident_log_path"])
        self.detector = TransitionDetector(state_store or build_state_store(self.config, "state_dir"))
        self.debouncer = AlertDebouncer(
            alert_store or build_state_store(self.config, "alert_marker_dir"),
            self.config["debounce_seconds"],
        )
        self.alert_sender = alert_sender or build_alert_sender(self.config)

    @property
    def known_agents(self) -> list[str]:
        return list(self._known_agents)

    def check_agent(self, document: ReportDocument, agent: str, now: datetime) -> AgentCheck:
        section = document.get(agent)
        if section is None:
            return AgentCheck(agent, Classification.UNKNOWN, reason=REASON_NO_SECTION)

        model, channel = section.model, section.channel
        last_ping = section.last_ping
        if not last_ping or last_ping == NO_DATA:
            return AgentCheck(agent, Classification.UNKNOWN, reason=REASON_NO_DATA, model=model, channel=channel)

        pinged_at = parse_timestamp(last_ping, self._tz)
        if pinged_at is None:
            self.logger.warning(f"Unparseable Last Ping for {agent}: {last_ping!r}")
            return AgentCheck(agent, Classification.UNKNOWN, reason=REASON_INVALID, model=model, channel=channel)

        staleness = classify(now, pinged_at, self._warning_minutes, self._critical_minutes)
        return AgentCheck(
            agent,
            staleness.classification,
            minutes=staleness.minutes,
            model=model,
            channel=channel,
        )

    def check_agents(self, document: ReportDocument, now: datetime) -> list[AgentCheck]:
        return [self.check_agent(document, agent, now) for agent in self._known_agents]

    async def run_cycle(self, dry_run: bool = False) -> CycleResult:
        """Run one monitoring pass.

        Raises:
            ReportNotFoundError: If the report document does not exist.
        """
        if not self.report.exists():
            raise ReportNotFoundError(self.report.path)

        now = self._clock()
        result = CycleResult(checks=self.check_agents(self.report.load(), now))

        for check in result.checks:
            event = self.detector.evaluate(check.agent, check.classification, dry_run=dry_run)
            if event is None:
                continue
            result.incidents.append(event)
            if dry_run:
                self.logger.info(f"[DRY RUN] Would log incident: {event.kind.emoji} {check.agent} {event.kind.value}")
                continue
            try:
                self.incidents.record(check.agent, event.kind, check.minutes, check.model, check.channel, now)
            except OSError as e:
                self.logger.error(f"Failed to record incident for {check.agent}: {e}")

        statuses = {c.agent: (c.classification.emoji, c.classification.label) for c in result.checks}
        result.report_updated = await asyncio.to_thread(self.report.set_status_lines, statuses)

        await self._maybe_alert(result, now, dry_run)
        self._log_summary(result, now)
        return result

    async def run(self, dry_run: bool = False):
        """Repeat ``run_cycle`` every ``check_interval_seconds`` until stopped."""
        self._running = True
        while self._running:
            try:
                await self.run_cycle(dry_run=dry_run)
            except ReportNotFoundError as e:
                self.logger.error(str(e))
            except Exception as e:
                self.logger.error(f"Health check cycle failed: {e}")
            if self._running:
                await asyncio.sleep(self._check_interval)

    def stop(self):
        self._running = False

    def compose_alert(self, lines: list[str], now: datetime) -> str:
        zone = now.tzname() or ""
        parts = [
            "⚠️ Agent Health Alert",
            "",
            *lines,
            "",
            f"Dashboard: {self.report.path}",
            f"Time: {now.strftime('%Y-%m-%d %H:%M')} {zone}".rstrip(),
        ]
        return "\n".join(parts)

    def _alert_lines(self, checks: list[AgentCheck]) -> list[str]:
        lines = []
        for check in checks:
            if check.classification.degraded:
                lines.append(check.alert_line)
            elif check.classification is Classification.UNKNOWN and self._alert_on_unknown:
                lines.append(check.alert_line)
        return lines

    async def _maybe_alert(self, result: CycleResult, now: datetime, dry_run: bool):
        lines = self._alert_lines(result.checks)
        if not lines:
            return

        now_epoch = now.timestamp()
        if not self.debouncer.ready(now_epoch):
            result.debounced = True
            return

        result.alert_text = self.compose_alert(lines, now)
        if dry_run:
            self.logger.info(f"[DRY RUN] Would send alert:\n{result.alert_text}")
        else:
            result.alert_sent = await self._dispatch(result.alert_text)
            if result.alert_sent:
                self.debouncer.mark_sent(now_epoch)

        critical = [c.agent for c in result.checks if c.classification is Classification.CRITICAL]
        if critical:
            self.logger.warning(f"🚨 CRITICAL: {' '.join(critical)} unresponsive for >{self._critical_minutes} min")

    async def _dispatch(self, text: str) -> bool:
        try:
            sent = await self.alert_sender.send(text)
        except Exception as e:
            self.logger.warning(f"Alert dispatch failed: {e}")
            return False
        if not sent:
            self.logger.warning("Alert dispatch failed; will retry next cycle")
        return sent

    def _log_summary(self, result: CycleResult, now: datetime):
        zone = now.tzname() or ""
        self.logger.info(
            f"Health check complete at {now.strftime('%Y-%m-%d %H:%M')} {zone}".rstrip(),
            extra={"agent_data": {"agents": [c.to_dict() for c in result.checks]}},
        )
        for check in result.checks:
            self.logger.info(f"  {check.summary}")
