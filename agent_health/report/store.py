"""On-disk report store.

Readers never lock and may see a slightly stale report. Every
read-modify-write takes the directory lock; when the lock cannot be had in
time the write is skipped and the method returns False. New content is
written to a temp file beside the report and renamed over it, so a reader
never sees a partial write.
"""

import os
import tempfile
from pathlib import Path

from agent_health.report.document import (
    STATUS,
    AgentSection,
    ReportDocument,
    is_valid_agent_name,
    new_report,
    parse_report,
    read_field,
    render_report,
)
from agent_health.shared.errors import InvalidAgentNameError
from agent_health.shared.lock import DirectoryLock, LockOutcome
from agent_health.shared.logger import get_agent_logger

UNKNOWN_STATUS = "⚪ Unknown"


class ReportStore:
    """Read and update the Markdown health report."""

    def __init__(self, path: str, lock: DirectoryLock):
        self._path = Path(path)
        self._lock = lock
        self.logger = get_agent_logger("report")

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def read_text(self) -> str:
        return self._path.read_text(encoding="utf-8")

    def load(self) -> ReportDocument:
        """Parse the current report; a missing file is an empty report."""
        if not self.exists():
            return new_report()
        return parse_report(self.read_text())

    def read_section(self, agent: str) -> str:
        """Raw text of ``agent``'s section, or '' when absent."""
        if not self.exists():
            return ""
        section = self.load().get(agent)
        return section.render() if section else ""

    def read_field(self, agent: str, field_name: str) -> str:
        return read_field(self.read_section(agent), field_name)

    def upsert_agent_section(
        self,
        agent: str,
        label: str,
        fields: dict[str, str],
        updated_at: str | None = None,
    ) -> bool:
        """Create or update ``agent``'s section in place.

        Existing fields not named in ``fields`` are kept. A new section
        starts with an Unknown status until the monitor classifies it.
        """
        if not is_valid_agent_name(agent):
            raise InvalidAgentNameError(agent)

        def apply(document: ReportDocument):
            section = document.get(agent)
            if section is None:
                section = AgentSection(name=agent, label=label)
                section.set(STATUS, UNKNOWN_STATUS)
                document.upsert(section)
            section.label = label
            for name, value in fields.items():
                section.set(name, value)
            if updated_at:
                document.set_last_updated(updated_at)

        return self._update(apply, f"upsert {agent}")

    def set_status_line(self, agent: str, emoji: str, status_text: str) -> bool:
        return self.set_status_lines({agent: (emoji, status_text)})

    def set_status_lines(self, statuses: dict[str, tuple[str, str]]) -> bool:
        """Rewrite the Status field of several agents under one lock.

        Agents without a section are left alone.
        """

        def apply(document: ReportDocument):
            for agent, (emoji, status_text) in statuses.items():
                section = document.get(agent)
                if section is None:
                    continue
                section.set(STATUS, f"{emoji} {status_text}")

        return self._update(apply, "status update")

    def _update(self, apply, description: str) -> bool:
        with self._lock.hold() as outcome:
            if outcome is LockOutcome.TIMED_OUT:
                self.logger.warning(
                    f"Could not acquire report lock, skipping {description}",
                    extra={"agent_data": {"lock_dir": str(self._lock.path)}},
                )
                return False
            document = self.load()
            apply(document)
            self._write_atomic(render_report(document))
        return True

    def _write_atomic(self, content: str):
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp, 0o644)
            os.replace(tmp, self._path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
