"""Daily check that runs every promotion config whose end-of-year date has been reached."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional
from uuid import UUID

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from schoolledger.core.config import settings
from schoolledger.db.session import AsyncSessionLocal

from . import service

logger = logging.getLogger(__name__)

PROMOTION_JOB_ID = "year_end_promotion_check"

scheduler: Optional[AsyncIOScheduler] = None


@dataclass(frozen=True)
class DueRunOutcome:
    config_id: UUID
    tenant_id: UUID
    succeeded: bool
    message: str


async def run_due_promotions(session_factory=AsyncSessionLocal, today: Optional[date] = None) -> List[DueRunOutcome]:
    """
    Execute every due config, each in its own session. A failing config is logged
    and left FAILED; the remaining configs still run.
    """
    today = today or date.today()
    async with session_factory() as db:
        due = [(c.id, c.tenant_id) for c in await service.get_due_configs(db, today)]

    if not due:
        logger.debug("No promotion configs due on %s", today)
        return []
    logger.info("Found %s promotion configs due on %s", len(due), today)

    outcomes: List[DueRunOutcome] = []
    for config_id, tenant_id in due:
        async with session_factory() as db:
            try:
                summary = await service.execute_config(db, config_id)
            except Exception as exc:
                message = getattr(exc, "message", None) or str(exc)
                logger.error("Scheduled promotion %s for tenant %s failed: %s", config_id, tenant_id, message)
                outcomes.append(DueRunOutcome(config_id, tenant_id, False, message))
            else:
                outcomes.append(DueRunOutcome(config_id, tenant_id, True, summary.message))
    return outcomes


def start_scheduler() -> AsyncIOScheduler:
    global scheduler
    if scheduler is not None and scheduler.running:
        return scheduler

    timezone = settings.promotion_scheduler_timezone
    scheduler = AsyncIOScheduler(timezone=timezone) if timezone else AsyncIOScheduler()
    scheduler.add_job(
        run_due_promotions,
        CronTrigger(
            hour=settings.promotion_scheduler_hour,
            minute=settings.promotion_scheduler_minute,
            timezone=timezone,
        ),
        id=PROMOTION_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.start()
    logger.info(
        "Promotion scheduler started: daily at %02d:%02d",
        settings.promotion_scheduler_hour, settings.promotion_scheduler_minute,
    )
    return scheduler


def shutdown_scheduler() -> None:
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Promotion scheduler stopped")
    scheduler = None
