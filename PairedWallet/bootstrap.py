"""
CLI entry point for the paired-wallet node bootstrap.

Usage:
    # Settings from ./settings.json (or $PW_SETTINGS_FILE)
    python -m PairedWallet.bootstrap

    # Explicit settings file
    python -m PairedWallet.bootstrap --settings /etc/pairedwallet/settings.json

    # Without the Redis-backed event log and address pool records
    python -m PairedWallet.bootstrap --no-event-log
"""

import argparse
import asyncio
import sys
from typing import Optional

import redis

from PairedWallet.pw_shared.console import Console
from PairedWallet.pw_shared.errors import (
    EventLogUnavailableError,
    InvalidRoleError,
    SettingsError,
)
from PairedWallet.pw_shared.settings import Settings, load_settings, resolve_settings_path
from PairedWallet.pw_shared.types import BootstrapReport
from PairedWallet.pw_server.event_log import create_event_log_client
from PairedWallet.pw_server.orchestrator import BootstrapContext, BootstrapOrchestrator


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pw-bootstrap",
        description="Unlock both wallet daemons, verify today's key pair and provision address pools.",
    )
    parser.add_argument("--settings", default=None, help="path to the JSON settings file")
    parser.add_argument(
        "--no-event-log",
        action="store_true",
        help="run without Redis (no structured log, no address pool records)",
    )
    return parser.parse_args(argv)


async def run_bootstrap(settings: Settings, redis_client: Optional[redis.Redis] = None) -> BootstrapReport:
    ctx = BootstrapContext.from_settings(settings, redis_client=redis_client)
    try:
        return await BootstrapOrchestrator(ctx).run()
    finally:
        await ctx.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings(resolve_settings_path(args.settings))
    except InvalidRoleError:
        Console.error("invalid serverType")
        return 1
    except SettingsError as e:
        Console.error("invalid settings", e)
        return 1

    redis_client = None
    if not args.no_event_log:
        try:
            redis_client = create_event_log_client()
        except EventLogUnavailableError as e:
            Console.error("event log unavailable", e)
            return 1

    try:
        report = asyncio.run(run_bootstrap(settings, redis_client))
    finally:
        if redis_client is not None:
            redis_client.close()

    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
