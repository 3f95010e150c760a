"""Run the health monitor: python -m agent_health.monitor [--dry-run] [--watch]"""

import argparse
import asyncio
import sys

from agent_health.monitor.agent import HealthMonitor
from agent_health.shared.config import load_health_config
from agent_health.shared.errors import ReportNotFoundError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m agent_health.monitor",
        description="Check agent heartbeats, update the report and alert on stale agents.",
    )
    parser.add_argument("--dry-run", action="store_true", help="do not send alerts or persist state")
    parser.add_argument("--watch", action="store_true", help="keep running every check_interval_seconds")
    parser.add_argument("--config", help="path to a JSON config file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_health_config(args.config)
    monitor = HealthMonitor(config=config)

    if not monitor.report.exists():
        monitor.logger.error(f"Error: Dashboard file not found at {monitor.report.path}")
        return 1

    try:
        if args.watch:
            asyncio.run(monitor.run(dry_run=args.dry_run))
        else:
            asyncio.run(monitor.run_cycle(dry_run=args.dry_run))
    except ReportNotFoundError as e:
        monitor.logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nMonitor shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
