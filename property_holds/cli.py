"""Run one hold expiry sweep. Meant for cron or a container scheduler.

Usage:
    property-holds-sweep
    property-holds-sweep --at "2026-03-01 09:00"
    property-holds-sweep --dry-run
"""

from __future__ import annotations

import argparse
import sys

from loguru import logger

from property_holds.core.config import get_settings
from property_holds.core.logging import setup_logging
from property_holds.models.base import utcnow
from property_holds.services.db import db_session, init_db
from property_holds.services.holds import HoldService
from property_holds.services.scheduler import run_sweep_once
from property_holds.utils.time import display_timezone, format_local, parse_instant


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="property-holds-sweep", description="Expire overdue property holds")
    parser.add_argument("--at", help="Sweep as of this instant instead of now (e.g. '2026-03-01 09:00', '2 hours ago')")
    parser.add_argument("--timezone", help="Timezone used to read --at and print times")
    parser.add_argument("--dry-run", action="store_true", help="List holds that would expire without changing them")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.logging.level, serialize=settings.logging.json_output)
    timezone = args.timezone or display_timezone()

    now = utcnow()
    if args.at:
        now = parse_instant(args.at, timezone)
        if now is None:
            logger.error("Could not understand --at value {value!r}", value=args.at)
            return 2

    init_db()

    if args.dry_run:
        with db_session() as session:
            candidates = HoldService(session).expired_candidates(now=now)
        print(f"{len(candidates)} hold(s) would expire as of {format_local(now, timezone)}")
        for hold_id in candidates:
            print(f"  - {hold_id}")
        return 0

    result = run_sweep_once(now)
    print(
        f"Sweep as of {format_local(now, timezone)}: "
        f"{len(result.expired)} expired, {len(result.skipped)} skipped, {len(result.failed)} failed"
    )
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
