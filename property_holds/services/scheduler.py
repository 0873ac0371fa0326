from __future__ import annotations

import asyncio
from datetime import datetime

from loguru import logger

from property_holds.services.db import db_session
from property_holds.services.lifecycle import SweepResult, get_lifecycle_manager


def run_sweep_once(now: datetime | None = None) -> SweepResult:
    with db_session() as session:
        return get_lifecycle_manager(session).expire_sweep(now)


async def run_sweep_loop(interval_seconds: int) -> None:
    """Sweep forever; a failing tick is logged and simply retried on the next one."""
    while True:
        try:
            result = await asyncio.to_thread(run_sweep_once)
            if result.failed:
                logger.warning("Sweep left {count} holds for the next tick", count=len(result.failed))
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Hold expiry sweep failed")
        await asyncio.sleep(interval_seconds)
