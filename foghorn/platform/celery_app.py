from celery import Celery
from kombu import Queue

from foghorn.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - scan.scraping: sitemap scraping runs
    - scan.audits: PageSpeed audit runs

    Each task drives one whole run (its own asyncio worker pool), so worker
    processes should run with concurrency 1 per queue.
    """
    celery_app = Celery(
        "foghorn",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
        result_expires=3600,
        task_routes={
            "foghorn.features.scan.workers.tasks.scrape_sitemaps": {"queue": "scan.scraping"},
            "foghorn.features.scan.workers.tasks.run_audits": {"queue": "scan.audits"},
        },
        task_queues=(
            Queue("default"),
            Queue("scan.scraping"),
            Queue("scan.audits"),
        ),
        task_default_queue="default",
        worker_prefetch_multiplier=1,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        beat_schedule={
            "scrape-sitemaps": {
                "task": "foghorn.features.scan.workers.tasks.scrape_sitemaps",
                "schedule": 3600.0,  # hourly
            },
            "run-audits": {
                "task": "foghorn.features.scan.workers.tasks.run_audits",
                "schedule": 900.0,  # every 15 minutes
            },
        },
    )

    celery_app.autodiscover_tasks(["foghorn.features.scan.workers"])

    return celery_app


celery_app = create_celery_app()
