"""Record a heartbeat: python -m agent_health.heartbeat <Agent> <Creature>

MODEL and CHANNEL come from the environment. Without MODEL the current
model is looked up with ``openclaw status``.
"""

import argparse
import asyncio
import os
import sys

from agent_health.heartbeat.recorder import HeartbeatRecorder
from agent_health.monitor.timestamps import now_in, resolve_timezone
from agent_health.report.store import ReportStore
from agent_health.shared.config import load_health_config
from agent_health.shared.errors import InvalidAgentNameError
from agent_health.shared.lock import DirectoryLock
from agent_health.shared.openclaw import OpenClawCLI
from agent_health.shared.state import build_state_store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m agent_health.heartbeat",
        usage="%(prog)s <agent> <creature> [--config PATH]",
        description="Record a heartbeat for one agent in the health report.",
    )
    parser.add_argument("agent", help="agent name, e.g. Stilgar")
    parser.add_argument("creature", help="display label shown in the section heading")
    parser.add_argument("--config", help="path to a JSON config file")
    return parser


async def resolve_model(cli: OpenClawCLI | None = None) -> str:
    model = os.environ.get("MODEL")
    if model:
        return model
    return await (cli or OpenClawCLI()).current_model()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_health_config(args.config)
    tz = resolve_timezone(config.get("timezone"))

    lock = DirectoryLock(config["lock_dir"], timeout=config["lock_timeout_seconds"])
    recorder = HeartbeatRecorder(
        store=ReportStore(config["report_path"], lock),
        uptime_store=build_state_store(config, "uptime_dir"),
        clock=lambda: now_in(tz),
        known_agents=config.get("known_agents"),
    )

    model = asyncio.run(resolve_model())
    channel = os.environ.get("CHANNEL") or config.get("default_channel", "telegram")

    try:
        recorded = recorder.record(args.agent, args.creature, model=model, channel=channel)
    except InvalidAgentNameError as e:
        recorder.logger.error(str(e))
        return 2
    return 0 if recorded else 1


if __name__ == "__main__":
    sys.exit(main())
