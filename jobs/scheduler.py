"""
Settlement scheduler.

The settlement cycle runs as an APScheduler interval job. A cycle that
is still running when the next one is due is never started twice: the
job allows a single instance and missed runs are coalesced.
"""

from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from ledger_bridge.services.withdrawal.settlement_engine import SettlementEngine


SETTLEMENT_JOB_ID = "withdrawal_settlement"


def create_scheduler() -> AsyncIOScheduler:
    """Create the worker scheduler (not started)."""
    return AsyncIOScheduler(timezone=UTC)


def register_settlement_job(
    scheduler: AsyncIOScheduler, engine: SettlementEngine
) -> None:
    """
    Register the settlement cycle as an interval job.

    Args:
        scheduler: Scheduler to register on
        engine: Settlement engine
    """
    scheduler.add_job(
        engine.run_cycle,
        "interval",
        seconds=engine.config.interval_seconds,
        id=SETTLEMENT_JOB_ID,
        name="Withdrawal settlement cycle",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
        # First cycle right after start-up
        next_run_time=datetime.now(UTC),
    )

    logger.info(
        f"[Scheduler] Settlement job registered "
        f"(every {engine.config.interval_seconds}s)"
    )
