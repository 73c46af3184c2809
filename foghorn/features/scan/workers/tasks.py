"""
Celery tasks for the scheduled scrape and audit runs.

Both wrap the async run functions with ``asyncio.run``; Celery Beat triggers
them on the schedule in ``foghorn.platform.celery_app``.
"""
import asyncio
from datetime import datetime, timezone

from celery import shared_task

from foghorn.features.scan.services import audit_service, scrape_service
from foghorn.platform.config import settings
from foghorn.platform.db.session import worker_sessionmaker
from foghorn.platform.logger import flush_logger, get_logger

logger = get_logger(__name__)


async def _scrape(limit: int, concurrency: int) -> int:
    async with worker_sessionmaker() as session_factory:
        return await scrape_service.run_scrape(session_factory, logger, limit, concurrency)


async def _audit(limit: int, concurrency: int, delay_seconds: float) -> int:
    async with worker_sessionmaker() as session_factory:
        return await audit_service.run_audits(session_factory, logger, limit, concurrency, delay_seconds)


@shared_task(bind=True, name="foghorn.features.scan.workers.tasks.scrape_sitemaps")
def scrape_sitemaps(self, limit: int = settings.SCRAPE_BATCH_LIMIT, concurrency: int = settings.MAX_WORKER_CONCURRENCY):
    try:
        count = asyncio.run(_scrape(limit, concurrency))
    finally:
        flush_logger(logger)
    return {
        "status": "success",
        "sites_scraped": count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@shared_task(bind=True, name="foghorn.features.scan.workers.tasks.run_audits")
def run_audits(
    self,
    limit: int = settings.AUDIT_BATCH_LIMIT,
    concurrency: int = settings.MAX_WORKER_CONCURRENCY,
    delay_seconds: float = settings.AUDIT_DELAY_SECONDS,
):
    try:
        count = asyncio.run(_audit(limit, concurrency, delay_seconds))
    finally:
        flush_logger(logger)
    return {
        "status": "success",
        "pages_audited": count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
