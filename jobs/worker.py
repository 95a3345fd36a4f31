"""
Ledger Bridge worker.

Runs both long-lived components in one process:
- the deposit ingestor as an asyncio task
- the settlement cycle as a scheduler job

They share no in-process state, only the database and the HTTP client.

Usage:
    python -m jobs.worker
"""

import asyncio
import signal

from loguru import logger

from jobs.health import WorkerState, start_health_server, stop_health_server
from jobs.scheduler import create_scheduler, register_settlement_job
from ledger_bridge.config.database import create_engine_and_sessionmaker
from ledger_bridge.config.logging import setup_logging
from ledger_bridge.config.settings import Settings, load_settings
from ledger_bridge.services.customer_directory import DatabaseCustomerDirectory
from ledger_bridge.services.deposit.ingestor import DepositIngestor
from ledger_bridge.services.ledger_client.horizon import HorizonClient
from ledger_bridge.services.ledger_client.signer import load_signer
from ledger_bridge.services.withdrawal.settlement_engine import SettlementEngine
from ledger_bridge.utils.security import mask_address


SHUTDOWN_TIMEOUT = 60.0


async def run_worker(settings: Settings) -> None:
    """
    Run the worker until SIGINT/SIGTERM.

    Args:
        settings: Application settings
    """
    engine, session_maker = create_engine_and_sessionmaker(settings)
    client = HorizonClient(
        settings.horizon_url,
        request_timeout=settings.request_timeout_seconds,
        page_size=settings.stream_page_size,
        poll_interval=settings.stream_poll_interval,
    )

    ingestor = DepositIngestor(
        session_maker,
        client,
        DatabaseCustomerDirectory(),
        settings.ingestor_config(),
    )

    scheduler = create_scheduler()
    settlement: SettlementEngine | None = None
    if settings.signer_path:
        signer = load_signer(settings.signer_path, settings)
        settlement = SettlementEngine(
            session_maker, client, signer, settings.settlement_config()
        )
        register_settlement_job(scheduler, settlement)
    else:
        logger.warning(
            "SIGNER_PATH not set: withdrawal settlement is disabled, "
            "requests stay pending"
        )

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Received shutdown signal")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    logger.info(
        f"Worker starting for account {mask_address(settings.base_account_address)}"
    )

    state = WorkerState(scheduler=scheduler)
    state.ingestor_task = asyncio.create_task(ingestor.run(), name="deposit-ingestor")

    if settlement:
        await settlement.check_stuck_sending()
    scheduler.start()

    runner = await start_health_server(state, port=settings.health_check_port)

    stop_waiter = asyncio.create_task(stop_event.wait())
    await asyncio.wait(
        {stop_waiter, state.ingestor_task}, return_when=asyncio.FIRST_COMPLETED
    )
    stop_waiter.cancel()

    if state.ingestor_task.done() and not state.ingestor_task.cancelled():
        error = state.ingestor_task.exception()
        if error:
            logger.opt(exception=error).error("Deposit ingestor crashed")

    logger.info("Graceful shutdown initiated...")

    # Ingestor finishes the event in progress
    await ingestor.stop()
    try:
        await asyncio.wait_for(state.ingestor_task, timeout=SHUTDOWN_TIMEOUT)
    except asyncio.TimeoutError:
        logger.error("Deposit ingestor did not stop in time")
    except Exception as e:
        logger.warning(f"Deposit ingestor stopped with error: {e}")

    # No new cycles; the running one finishes its current request
    scheduler.shutdown(wait=False)
    if settlement:
        await settlement.stop()

    await stop_health_server(runner)
    await client.close()
    await engine.dispose()
    logger.info("Graceful shutdown complete")


def main() -> None:
    """Worker entry point."""
    settings = load_settings()
    setup_logging(settings)
    asyncio.run(run_worker(settings))


if __name__ == "__main__":
    main()
