"""
Sync Runner - Cron and On-Demand Execution

Runs SQL object synchronization once (deployments) or on a cron schedule
(drift repair) using APScheduler.

Features:
- RUN_ONCE mode for immediate execution
- Cron-based scheduling (SYNC_SCHEDULE_CRON)
- JSON report file after each run
- Graceful shutdown: SIGINT/SIGTERM stop the run before its next statement

Usage:
    # Run once and exit
    RUN_ONCE=true python -m apps.synchronizer.runner

    # Scheduled mode
    SYNC_SCHEDULE_CRON="0 3 * * *" python -m apps.synchronizer.runner
"""

import asyncio
import logging
import os
import signal
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import orjson
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.engine import Engine

from apps.synchronizer.resources import ResourceBundle
from apps.synchronizer.service import load_configured_bundle, sync_sql_objects_by_kind
from utils.config import settings
from utils.db import get_engine
from utils.errors import SyncFailedError
from utils.logging import setup_logging
from utils.schemas import SyncResult

logger = logging.getLogger(__name__)


def write_report(path: str, total: SyncResult, per_kind: list[SyncResult]) -> None:
    """Write the run's counters as a JSON document."""
    report = {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "ts": datetime.now(timezone.utc).isoformat(),
        "total": total.model_dump(mode="json"),
        "applied": total.applied,
        "per_kind": [result.model_dump(mode="json") for result in per_kind],
    }

    report_path = Path(path)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_bytes(orjson.dumps(report, option=orjson.OPT_INDENT_2))


class SyncRunner:
    """
    Runner for one-off or periodic synchronization.

    Handles:
    - Engine and resource bundle setup
    - APScheduler setup and management
    - Signal handling for graceful shutdown
    """

    def __init__(
        self,
        run_once: bool = False,
        engine: Optional[Engine] = None,
        bundle: Optional[ResourceBundle] = None,
    ) -> None:
        """
        Initialize runner.

        Args:
            run_once: If True, sync once and exit
            engine: Engine to use, created from settings.DATABASE_URL if None
            bundle: Resources to deploy, loaded from settings if None
        """
        self.run_once = run_once
        self.engine = engine
        self.bundle = bundle
        self.scheduler: AsyncIOScheduler | None = None
        self.shutdown_event = asyncio.Event()
        self.cancel_event = threading.Event()
        self.last_result: Optional[SyncResult] = None

        logger.info(
            "SyncRunner initialized",
            extra={
                "run_once": run_once,
                "cron_schedule": settings.SYNC_SCHEDULE_CRON,
            },
        )

    def run_sync(self) -> tuple[SyncResult, list[SyncResult]]:
        """Blocking sync run; returns (total, per_kind)."""
        if self.engine is None:
            self.engine = get_engine()
        if self.bundle is None:
            self.bundle = load_configured_bundle()

        per_kind = sync_sql_objects_by_kind(self.engine, self.bundle, cancel_event=self.cancel_event)
        total = sum(per_kind, SyncResult())
        return total, per_kind

    async def execute_sync(self) -> SyncResult:
        """
        Execute one sync, then write the report.

        Raises:
            SyncFailedError: If SYNC_FAIL_ON_ERRORS is set and the run had errors
        """
        logger.info("Starting sync execution")

        try:
            total, per_kind = await asyncio.to_thread(self.run_sync)
            self.last_result = total

            if settings.SYNC_REPORT_PATH:
                write_report(settings.SYNC_REPORT_PATH, total, per_kind)
                logger.info("Sync report written", extra={"path": settings.SYNC_REPORT_PATH})

            if settings.SYNC_FAIL_ON_ERRORS and not total.ok:
                raise SyncFailedError(f"SQL object sync failed with {total.errors} errors", result=total)

            logger.info("Sync execution completed successfully", extra={"result": total.model_dump(mode="json")})
            return total

        except Exception as e:
            logger.error(
                "Sync execution failed",
                extra={"error": str(e)},
                exc_info=True,
            )
            raise

        finally:
            if self.run_once:
                logger.info("RUN_ONCE mode: signaling shutdown")
                self.shutdown_event.set()

    def request_shutdown(self) -> None:
        self.cancel_event.set()
        self.shutdown_event.set()

    def setup_signal_handlers(self) -> None:
        """Setup handlers for graceful shutdown on SIGINT/SIGTERM."""

        def signal_handler(signum: int, frame: object) -> None:
            logger.info("Received signal %d, initiating graceful shutdown", signum)
            self.request_shutdown()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def start(self) -> None:
        """
        Start scheduler or execute once.

        In scheduled mode, runs continuously until shutdown signal.
        In RUN_ONCE mode, executes immediately and exits.
        """
        self.setup_signal_handlers()

        try:
            if self.run_once:
                logger.info("Running in RUN_ONCE mode")
                await self.execute_sync()
                return

            logger.info("Running in scheduled mode")

            self.scheduler = AsyncIOScheduler()
            trigger = CronTrigger.from_crontab(settings.SYNC_SCHEDULE_CRON)
            self.scheduler.add_job(
                self.execute_sync,
                trigger=trigger,
                id="sql_object_sync_job",
                name="Periodic SQL Object Sync",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

            self.scheduler.start()
            logger.info("Scheduler started")

            job = self.scheduler.get_job("sql_object_sync_job")
            next_run = getattr(job, "next_run_time", None)

            logger.info(
                "Scheduled sync job",
                extra={
                    "schedule": settings.SYNC_SCHEDULE_CRON,
                    "next_run": str(next_run) if next_run is not None else None,
                },
            )

            await self.shutdown_event.wait()

            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shutdown complete")

        finally:
            if self.engine is not None:
                self.engine.dispose()


async def main() -> None:
    """Main entry point for the synchronizer."""
    setup_logging(level=settings.LOG_LEVEL, format_type=settings.LOG_FORMAT)

    run_once = (
        os.getenv("RUN_ONCE", "false").lower() in ("true", "1", "yes")
        or not settings.SYNC_SCHEDULE_CRON.strip()
    )

    runner = SyncRunner(run_once=run_once)

    try:
        await runner.start()
    except Exception as e:
        logger.error("Synchronizer failed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    asyncio.run(main())
