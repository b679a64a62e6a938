"""Command line entry point.

Exit codes:
    0  clean shutdown
    1  unexpected coordinator error
    2  identity corrupt      -> reset or restore the identity volume
    3  token rejected        -> rotate the registration token
    4  invalid configuration
    5  registration refused by the server, or retries exhausted
    6  registration token still unavailable when retries ran out
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from collections.abc import Sequence

from runner_coordinator.config import ConfigLoader, CoordinatorConfig
from runner_coordinator.coordinator import RunnerCoordinator
from runner_coordinator.errors import ConfigError, CoordinatorError
from runner_coordinator.identity import IdentityManager
from runner_coordinator.logging import CoordinatorLogger, LogConfig, configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runner-coordinator",
        description="Register a runner once and keep its server record enabled and named.",
    )
    parser.add_argument("-c", "--config", help="Path to runner-coordinator.yaml")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Register and reconcile until stopped")
    sub.add_parser("identity", help="Print the resolved identity (creates it on first use)")
    forget = sub.add_parser("forget-identity", help="Delete the persisted identity (decommission)")
    forget.add_argument("--yes", action="store_true", help="Confirm deletion")
    sub.add_parser("check-config", help="Validate the configuration and exit")
    return parser


def _identity_manager(config: CoordinatorConfig) -> IdentityManager:
    return IdentityManager(
        config.identity.path,
        slot_name=config.identity.slot_name,
        hostname=config.identity.hostname,
        pod_name=config.identity.pod_name,
    )


async def run_coordinator(config: CoordinatorConfig) -> None:
    """Run the coordinator until SIGTERM/SIGINT or a fatal error."""
    logger = CoordinatorLogger(LogConfig(level=config.logging.level, format=config.logging.format))

    async with RunnerCoordinator.from_config(config, logger=logger) as coordinator:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, coordinator.stop)
        try:
            await coordinator.run()
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    loader = ConfigLoader()
    try:
        config = loader.load(args.config)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code

    configure_logging(config.logging.level, config.logging.format)

    try:
        if args.command == "check-config":
            for issue in loader.warnings:
                print(f"warning: {issue.message}", file=sys.stderr)
            print("configuration ok")
            return 0

        if args.command == "identity":
            identity = _identity_manager(config).resolve_identity()
            print(json.dumps(identity.to_dict(), indent=2))
            return 0

        if args.command == "forget-identity":
            if not args.yes:
                print(
                    "refusing to delete the identity without --yes; the server record "
                    "will be orphaned",
                    file=sys.stderr,
                )
                return 1
            removed = _identity_manager(config).forget()
            print("identity removed" if removed else "no identity to remove")
            return 0

        asyncio.run(run_coordinator(config))
        return 0
    except CoordinatorError as e:
        print(f"fatal: {e}", file=sys.stderr)
        if e.suggestion:
            print(f"hint: {e.suggestion}", file=sys.stderr)
        return e.exit_code
