"""
SCHEDULER BOOTSTRAP

Keeps the macro input snapshot warm between requests.
Scheduler is orchestration-only and contains no business logic.
"""

import logging
from typing import Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.macro_input_provider import MacroInputProvider

logger = logging.getLogger(__name__)

DEFAULT_JOB_ID = "macro_inputs_refresh"


class MacroRefreshScheduler:
    """Runs MacroInputProvider.refresh on a fixed interval"""

    def __init__(
        self,
        provider: MacroInputProvider,
        interval_minutes: int,
        timezone: str = "UTC",
        job_id: Optional[str] = None,
    ):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.provider = provider
        self.interval_minutes = interval_minutes
        self.job_id = job_id or DEFAULT_JOB_ID
        self.scheduler = AsyncIOScheduler(timezone=pytz.timezone(timezone))

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    async def run_refresh(self) -> None:
        snapshot = await self.provider.refresh()
        if snapshot is None:
            logger.warning("⚠️ No macro snapshot available after refresh")
            return
        fallbacks = snapshot.fallback_fields
        logger.info(
            f"🔄 Macro inputs refreshed "
            f"(mock={snapshot.used_mock_data}, fallbacks={len(fallbacks)})"
        )

    def start(self) -> None:
        if self.running:
            return
        self.scheduler.add_job(
            self.run_refresh,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=self.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"📅 Macro refresh every {self.interval_minutes} min (job={self.job_id})")

    def stop(self) -> None:
        if self.running:
            self.scheduler.shutdown(wait=False)
