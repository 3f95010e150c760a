"""Typed model of the Markdown health report.

The report is a sequence of plain lines and agent sections. A section runs
from its ``## <name> (<label>)`` heading to the next blank line and holds
``**Field:** value`` lines::

    ## Stilgar (Bear)
    **Status:** 🟢 Healthy
    **Last Ping:** 2026-02-13T09:00:00 EST
    **Model:** claude-opus
    **Channel:** telegram

A heading is recognised by its ``## <name> (`` prefix; whatever follows the
closing parenthesis is kept. A field may carry a prefix such as a list
bullet (``- **Model:** ...``), which is kept when the line is rewritten.

``parse_report`` and ``render_report`` are inverses for any document whose
sections list their fields before any other lines; other lines inside a
section are kept and rendered after the fields.
"""

import re
from dataclasses import dataclass, field

HEADER_LINE = re.compile(r"^## (?P<name>[A-Za-z0-9_-]+) \((?P<label>[^)]*)\)?(?P<suffix>.*)$")
FIELD_LINE = re.compile(r"^(?P<prefix>.*?)\*\*(?P<name>[^*]+?):\*\*(?P<value>.*)$")
AGENT_NAME = re.compile(r"^[A-Za-z0-9_-]+$")

STATUS = "Status"
LAST_PING = "Last Ping"
MODEL = "Model"
CHANNEL = "Channel"
UPTIME = "Uptime"
LAST_UPDATED = "Last Updated"

DEFAULT_TITLE = "# Agent Health Dashboard"


def is_valid_agent_name(name: str) -> bool:
    return bool(name) and AGENT_NAME.match(name) is not None


def format_field(name: str, value: str, prefix: str = "") -> str:
    return f"{prefix}**{name}:** {value}".rstrip()


def match_field(line: str) -> re.Match | None:
    return FIELD_LINE.match(line)


@dataclass
class AgentSection:
    name: str
    label: str
    fields: dict[str, str] = field(default_factory=dict)
    extra_lines: list[str] = field(default_factory=list)
    suffix: str = ""
    prefixes: dict[str, str] = field(default_factory=dict)

    @property
    def header(self) -> str:
        return f"## {self.name} ({self.label}){self.suffix}"

    def get(self, name: str) -> str:
        return self.fields.get(name, "")

    def set(self, name: str, value: str):
        self.fields[name] = value.strip()

    @property
    def status(self) -> str:
        return self.get(STATUS)

    @property
    def last_ping(self) -> str:
        return self.get(LAST_PING)

    @property
    def model(self) -> str:
        return self.get(MODEL)

    @property
    def channel(self) -> str:
        return self.get(CHANNEL)

    def lines(self) -> list[str]:
        rendered = [self.header]
        rendered.extend(format_field(k, v, self.prefixes.get(k, "")) for k, v in self.fields.items())
        rendered.extend(self.extra_lines)
        return rendered

    def render(self) -> str:
        return "\n".join(self.lines())


@dataclass
class ReportDocument:
    blocks: list[str | AgentSection] = field(default_factory=list)

    def sections(self) -> list[AgentSection]:
        return [b for b in self.blocks if isinstance(b, AgentSection)]

    def get(self, name: str) -> AgentSection | None:
        for block in self.blocks:
            if isinstance(block, AgentSection) and block.name == name:
                return block
        return None

    def upsert(self, section: AgentSection) -> AgentSection:
        """Replace the section with the same agent name, or append it."""
        for i, block in enumerate(self.blocks):
            if isinstance(block, AgentSection) and block.name == section.name:
                self.blocks[i] = section
                return section

        while self.blocks and self.blocks[-1] == "":
            self.blocks.pop()
        if self.blocks:
            self.blocks.append("")
        self.blocks.append(section)
        self.blocks.append("")
        return section

    @property
    def last_updated(self) -> str:
        for block in self.blocks:
            if isinstance(block, str):
                match = match_field(block)
                if match and match.group("name") == LAST_UPDATED:
                    return match.group("value").strip()
        return ""

    def set_last_updated(self, value: str):
        for i, block in enumerate(self.blocks):
            if isinstance(block, str):
                match = match_field(block)
                if match and match.group("name") == LAST_UPDATED:
                    self.blocks[i] = format_field(LAST_UPDATED, value, match.group("prefix"))
                    return

        line = format_field(LAST_UPDATED, value)
        if self.blocks and isinstance(self.blocks[0], str) and self.blocks[0].startswith("# "):
            self.blocks[1:1] = ["", line]
        else:
            self.blocks[0:0] = [line, ""]


def new_report(title: str = DEFAULT_TITLE) -> ReportDocument:
    return ReportDocument(blocks=[title, ""])


def parse_report(text: str) -> ReportDocument:
    """Split report text into plain lines and agent sections."""
    blocks: list[str | AgentSection] = []
    current: AgentSection | None = None

    for line in text.split("\n"):
        header = HEADER_LINE.match(line)
        if header:
            current = AgentSection(
                name=header.group("name"),
                label=header.group("label"),
                suffix=header.group("suffix").rstrip(),
            )
            blocks.append(current)
            continue

        if current is not None:
            if line.strip() == "":
                current = None
                blocks.append(line)
                continue
            match = match_field(line)
            if match and match.group("name") not in current.fields:
                current.fields[match.group("name")] = match.group("value").strip()
                if match.group("prefix"):
                    current.prefixes[match.group("name")] = match.group("prefix")
            else:
                current.extra_lines.append(line)
            continue

        blocks.append(line)

    return ReportDocument(blocks=blocks)


def render_report(document: ReportDocument) -> str:
    parts = []
    for block in document.blocks:
        if isinstance(block, AgentSection):
            parts.append(block.render())
        else:
            parts.append(block)
    return "\n".join(parts)


def read_field(section_text: str, field_name: str) -> str:
    """Return the trimmed value of ``**field_name:**`` in a section, or ''."""
    for line in section_text.splitlines():
        match = match_field(line)
        if match and match.group("name") == field_name:
            return match.group("value").strip()
    return ""
