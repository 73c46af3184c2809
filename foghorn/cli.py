"""
Command-line runners for the scrape and audit pipelines.

    foghorn-scrape --limit 10 --concurrency 5
    foghorn-audit --limit 10 --concurrency 5 --delay 3
"""
import argparse
import asyncio
import sys
from typing import List, Optional

from foghorn.features.scan.services import audit_service, scrape_service
from foghorn.platform.config import settings
from foghorn.platform.db.session import worker_sessionmaker
from foghorn.platform.logger import flush_logger, get_logger

logger = get_logger("foghorn.cli")


def _concurrency(value: int) -> int:
    return max(1, min(value, settings.MAX_WORKER_CONCURRENCY))


def build_scrape_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape sitemaps for all sites")
    parser.add_argument(
        "--limit", type=int, default=settings.SCRAPE_BATCH_LIMIT, help="maximum number of sites to scrape"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.MAX_WORKER_CONCURRENCY,
        help=f"number of concurrent workers (max {settings.MAX_WORKER_CONCURRENCY})",
    )
    return parser


def build_audit_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run PageSpeed Insights audits on pages")
    parser.add_argument(
        "--limit", type=int, default=settings.AUDIT_BATCH_LIMIT, help="maximum number of pages to audit"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.MAX_WORKER_CONCURRENCY,
        help=f"number of concurrent workers (max {settings.MAX_WORKER_CONCURRENCY})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=settings.AUDIT_DELAY_SECONDS,
        help="delay in seconds between audits per worker",
    )
    return parser


async def _scrape(args: argparse.Namespace) -> None:
    async with worker_sessionmaker() as session_factory:
        await scrape_service.run_scrape(
            session_factory, logger, limit=args.limit, concurrency=_concurrency(args.concurrency)
        )


async def _audit(args: argparse.Namespace) -> None:
    async with worker_sessionmaker() as session_factory:
        await audit_service.run_audits(
            session_factory,
            logger,
            limit=args.limit,
            concurrency=_concurrency(args.concurrency),
            delay_seconds=max(args.delay, 0.0),
        )


def _run(coro) -> int:
    try:
        asyncio.run(coro)
        return 0
    except Exception as e:
        logger.error("Fatal error", extra={"error": str(e)}, exc_info=True)
        return 1
    finally:
        flush_logger(logger)


def scrape_main(argv: Optional[List[str]] = None) -> None:
    args = build_scrape_parser().parse_args(argv)
    sys.exit(_run(_scrape(args)))


def audit_main(argv: Optional[List[str]] = None) -> None:
    args = build_audit_parser().parse_args(argv)
    sys.exit(_run(_audit(args)))
