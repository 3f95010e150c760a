"""Append-only incident history.

Each transition adds one block to a Markdown log::

    ## 2026-02-13T09:45:00 EST
    - 🟡 Stilgar: Warning (45m stale)
    - Model: claude-opus
    - Channel: telegram

Recovered entries carry only the status line. Existing entries are never
rewritten.
"""

import fcntl
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from agent_health.monitor.staleness import humanize_minutes
from agent_health.monitor.timestamps import format_timestamp
from agent_health.monitor.transitions import IncidentKind
from agent_health.shared.logger import get_agent_logger

ENTRY_HEADING = re.compile(r"^## (?P<timestamp>.+?)\s*$")
STATUS_LINE = re.compile(
    r"^- (?P<emoji>\S+) (?P<agent>[A-Za-z0-9_-]+): (?P<kind>Warning|Critical|Recovered)"
    r"(?: \((?P<stale>.+) stale\))?\s*$"
)
DETAIL_LINE = re.compile(r"^- (?P<name>Model|Channel): (?P<value>.*)$")


@dataclass
class IncidentEntry:
    timestamp: str
    agent: str
    kind: IncidentKind
    stale: str = ""
    model: str = ""
    channel: str = ""

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "agent": self.agent,
            "kind": self.kind.value,
            "stale": self.stale,
            "model": self.model,
            "channel": self.channel,
        }


def format_incident(
    agent: str,
    kind: IncidentKind,
    stale_minutes: int,
    model: str,
    channel: str,
    now: datetime,
) -> str:
    lines = ["", f"## {format_timestamp(now)}"]
    if kind is IncidentKind.RECOVERED:
        lines.append(f"- {kind.emoji} {agent}: {kind.label}")
    else:
        lines.append(f"- {kind.emoji} {agent}: {kind.label} ({humanize_minutes(stale_minutes)} stale)")
        lines.append(f"- Model: {model}")
        lines.append(f"- Channel: {channel}")
    return "\n".join(lines) + "\n"


class IncidentLog:
    """Markdown incident history that only ever grows."""

    def __init__(self, path: str):
        self._path = Path(path)
        self.logger = get_agent_logger("incidents")

    @property
    def path(self) -> Path:
        return self._path

    def record(
        self,
        agent: str,
        kind: IncidentKind,
        stale_minutes: int,
        model: str,
        channel: str,
        now: datetime,
    ):
        """Append one incident block in a single locked write."""
        block = format_incident(agent, kind, stale_minutes, model, channel, now)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            try:
                f.write(block)
                f.flush()
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

        self.logger.info(
            f"Logged incident: {kind.emoji} {agent} {kind.value}",
            extra={"agent_data": {"agent": agent, "kind": kind.value, "stale_minutes": stale_minutes}},
        )

    def read_entries(self) -> list[IncidentEntry]:
        """Parse the log back into entries; unrecognised lines are ignored."""
        if not self._path.exists():
            return []

        entries: list[IncidentEntry] = []
        timestamp = ""
        current: IncidentEntry | None = None
        for line in self._path.read_text(encoding="utf-8").splitlines():
            heading = ENTRY_HEADING.match(line)
            if heading:
                timestamp = heading.group("timestamp")
                current = None
                continue
            status = STATUS_LINE.match(line)
            if status:
                current = IncidentEntry(
                    timestamp=timestamp,
                    agent=status.group("agent"),
                    kind=IncidentKind(status.group("kind").lower()),
                    stale=status.group("stale") or "",
                )
                entries.append(current)
                continue
            detail = DETAIL_LINE.match(line)
            if detail and current is not None:
                if detail.group("name") == "Model":
                    current.model = detail.group("value").strip()
                else:
                    current.channel = detail.group("value").strip()
        return entries
