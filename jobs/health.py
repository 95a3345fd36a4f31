"""
Health check server for worker monitoring.

Provides HTTP endpoints for health checks and monitoring.
"""

import asyncio
from dataclasses import dataclass

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger


@dataclass
class WorkerState:
    """Components the health endpoints report on."""

    scheduler: AsyncIOScheduler | None = None
    ingestor_task: asyncio.Task | None = None


WORKER_STATE_KEY = web.AppKey("worker_state", WorkerState)


def _ingestor_status(state: WorkerState) -> str:
    task = state.ingestor_task
    if task is None:
        return "not_started"
    if not task.done():
        return "running"
    if task.cancelled():
        return "cancelled"
    return "failed" if task.exception() else "stopped"


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with scheduler and ingestor status
    """
    state = request.app[WORKER_STATE_KEY]

    if state.scheduler is None:
        return web.json_response(
            {
                "status": "unhealthy",
                "error": "Scheduler not initialized",
            },
            status=503,
        )

    try:
        is_running = state.scheduler.running
        ingestor = _ingestor_status(state)
        jobs = state.scheduler.get_jobs()
        job_info = [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in jobs
        ]

        healthy = is_running and ingestor == "running"
        return web.json_response(
            {
                "status": "healthy" if healthy else "degraded",
                "scheduler_running": is_running,
                "ingestor": ingestor,
                "jobs": job_info,
            },
            status=200 if healthy else 503,
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response(
            {
                "status": "unhealthy",
                "error": str(e),
            },
            status=503,
        )


async def liveness_handler(request: web.Request) -> web.Response:
    """
    Liveness check endpoint.

    Returns:
        JSON response indicating if the process is alive
    """
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


def create_health_app(state: WorkerState) -> web.Application:
    """Build the health check application."""
    app = web.Application()
    app[WORKER_STATE_KEY] = state
    app.router.add_get("/health", health_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    state: WorkerState,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> web.AppRunner:
    """
    Start health check server.

    Args:
        state: Worker components to report on
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app(state))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_health_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Error stopping health check server: {e}")
