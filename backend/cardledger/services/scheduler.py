"""
Job executor and in-process daily scheduler for the renewal lifecycle jobs.

Both the cron HTTP triggers and the in-app schedule run jobs through
``run_job``, which opens a fresh session per run and serializes runs of the
same job inside this process. Nothing coordinates separate processes: two
workers triggering the same job at once can both see an unset notification
flag and send a duplicate notice.
"""
import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session
from cardledger.core.config import settings
from cardledger.db.session import SessionLocal
from cardledger.services.renewal_jobs import (
    run_renewal_reminders_once,
    run_auto_cancellation_notices_once,
    run_renewal_rollover_once,
    run_exchange_rate_refresh_once,
    run_rejected_entries_cleanup_once
)

logger = logging.getLogger(__name__)

JobFunc = Callable[[Session], Awaitable[int]]

RENEWAL_REMINDERS = "renewal-reminders"
AUTO_CANCEL = "auto-cancel"
RENEWAL_FLAG_RESET = "renewal-flag-reset"
EXCHANGE_REFRESH = "exchange-refresh"
REJECTED_CLEANUP = "rejected-cleanup"

JOBS: Dict[str, JobFunc] = {
    RENEWAL_REMINDERS: lambda db: run_renewal_reminders_once(db),
    AUTO_CANCEL: lambda db: run_auto_cancellation_notices_once(db),
    RENEWAL_FLAG_RESET: lambda db: run_renewal_rollover_once(db),
    EXCHANGE_REFRESH: lambda db: run_exchange_rate_refresh_once(db),
    REJECTED_CLEANUP: lambda db: run_rejected_entries_cleanup_once(db),
}

# Wall-clock run times in CRON_TIMEZONE
DAILY_SCHEDULE: List[Tuple[str, time]] = [
    (EXCHANGE_REFRESH, time(1, 30)),
    (REJECTED_CLEANUP, time(2, 0)),
    (RENEWAL_FLAG_RESET, time(3, 0)),
    (AUTO_CANCEL, time(10, 0)),
    (RENEWAL_REMINDERS, time(14, 0)),
]

_locks: Dict[str, asyncio.Lock] = {}


def _lock_for(name: str) -> asyncio.Lock:
    lock = _locks.get(name)
    if lock is None:
        lock = _locks[name] = asyncio.Lock()
    return lock


async def run_job(name: str, session_factory: Optional[Callable[[], Session]] = None) -> int:
    """
    Run one job to completion in its own session.

    Raises KeyError for an unknown job; job errors are logged and re-raised
    after the session is rolled back.
    """
    job = JOBS[name]
    async with _lock_for(name):
        db = (session_factory or SessionLocal)()
        try:
            result = await job(db)
            logger.info(f"Job {name} finished: {result}")
            return result
        except Exception:
            db.rollback()
            logger.exception(f"Job {name} failed")
            raise
        finally:
            db.close()


def next_run_at(now: datetime, at: time) -> datetime:
    """Next occurrence of the wall-clock time ``at`` strictly after ``now`` (same tzinfo)."""
    candidate = now.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class JobScheduler:
    """
    Cooperative daily scheduler: one asyncio task per job.

    A failing run is logged and the task sleeps until the next day's slot, so
    one job never blocks another.
    """

    def __init__(
        self,
        schedule: Optional[List[Tuple[str, time]]] = None,
        timezone: Optional[str] = None,
        session_factory: Optional[Callable[[], Session]] = None
    ):
        self._schedule = schedule or DAILY_SCHEDULE
        self._tz = ZoneInfo(timezone or settings.CRON_TIMEZONE)
        self._session_factory = session_factory
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self.is_running:
            return
        self._tasks = [
            asyncio.create_task(self._run_daily(name, at), name=f"cron-{name}")
            for name, at in self._schedule
        ]
        logger.info(f"In-app cron started with {len(self._tasks)} jobs ({self._tz.key})")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("In-app cron stopped")

    async def _run_daily(self, name: str, at: time) -> None:
        while True:
            now = datetime.now(self._tz)
            delay = (next_run_at(now, at) - now).total_seconds()
            await asyncio.sleep(delay)
            try:
                await run_job(name, self._session_factory)
            except Exception:
                # Already logged by run_job; keep the schedule alive
                continue
