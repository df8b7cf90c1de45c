import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from config import get_settings
from refresher import SessionRefresher

logger = logging.getLogger(__name__)

JOB_ID = "session_refresh"


class SessionKeepAlive:
    """Refreshes the access credential shortly before it expires.

    Only one refresh job exists at a time; scheduling again replaces it.
    """

    def __init__(
        self,
        refresher: SessionRefresher,
        *,
        margin_secs: Optional[int] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ) -> None:
        settings = get_settings()
        self.refresher = refresher
        self.margin_secs = (
            margin_secs if margin_secs is not None else settings.refresh_margin_secs
        )
        self.scheduler = scheduler or AsyncIOScheduler(timezone=settings.timezone)

    def next_run(self, expires_in: int, *, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(timezone.utc)
        # never schedule earlier than half the lifetime
        lead = min(self.margin_secs, expires_in // 2)
        return now + timedelta(seconds=max(expires_in - lead, 0))

    def schedule(self, expires_in: int, *, now: Optional[datetime] = None) -> datetime:
        run_date = self.next_run(int(expires_in), now=now)
        self.scheduler.add_job(
            self._run_refresh,
            DateTrigger(run_date=run_date),
            id=JOB_ID,
            replace_existing=True,
            misfire_grace_time=60,
        )
        logger.info(f"keepalive_scheduled: run_at={run_date.isoformat()}")
        return run_date

    def cancel(self) -> None:
        if self.scheduler.get_job(JOB_ID) is not None:
            self.scheduler.remove_job(JOB_ID)
            logger.info("keepalive_cancelled")

    async def _run_refresh(self) -> None:
        refreshed = await self.refresher.refresh()
        logger.info(f"keepalive_run: refreshed={refreshed}")
        if refreshed and self.refresher.last_expires_in:
            self.schedule(self.refresher.last_expires_in)

    def start(self) -> None:
        # AsyncIOScheduler binds to the running loop, so call from inside it
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("keepalive_started")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("keepalive_stopped")
