"""Async wrapper around the ``openclaw`` command line tool.

Used to wake the gateway with an alert message and to look up the model an
agent is currently running when ``$MODEL`` is not set.
"""

import asyncio
import re
from dataclasses import dataclass

MODEL_LINE = re.compile(r"^\s*model\s*[:=]\s*(?P<model>\S.*?)\s*$", re.IGNORECASE | re.MULTILINE)


@dataclass
class CommandResult:
    success: bool
    output: str
    command: str

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "output": self.output,
            "command": self.command,
        }


class OpenClawCLI:
    """Run ``openclaw`` subcommands as subprocesses."""

    def __init__(self, executable: str = "openclaw"):
        self._executable = executable

    async def _run_command(self, *args: str) -> CommandResult:
        """Run the CLI with ``args`` and return the result."""
        command = " ".join((self._executable, *args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self._executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return CommandResult(success=False, output=f"{self._executable} not available: {e}", command=command)
        stdout, stderr = await proc.communicate()
        output = stdout.decode().strip() or stderr.decode().strip()
        return CommandResult(success=proc.returncode == 0, output=output, command=command)

    async def wake(self, text: str, mode: str = "now") -> CommandResult:
        """Ask the gateway to deliver ``text`` to the operator."""
        return await self._run_command("gateway", "wake", "--text", text, "--mode", mode)

    async def status(self) -> CommandResult:
        return await self._run_command("status")

    async def current_model(self, default: str = "unknown") -> str:
        """Return the model named in ``openclaw status`` output, or ``default``."""
        result = await self.status()
        if not result.success:
            return default
        match = MODEL_LINE.search(result.output)
        if not match:
            return default
        return match.group("model")
