"""
Sitemap scraping: page reconciliation per site and the scrape run across sites.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlparse

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.pages.models.page import Page
from foghorn.features.scan.services.sitemap import fetch_sitemap
from foghorn.features.sites.models.site import Site
from foghorn.platform.config import settings
from foghorn.platform.worker_pool import run_pool

MAX_PAGES_PER_SITE = settings.MAX_PAGES_PER_SITE


def page_path(url: str) -> str:
    """Path component of ``url`` (query and fragment dropped); ``/`` when empty."""
    return urlparse(url).path or "/"


async def reconcile_pages(
    db: AsyncSession,
    site: Site,
    urls: Iterable[str],
    max_pages: int = MAX_PAGES_PER_SITE,
) -> List[Page]:
    """
    Create a Page for every URL whose path the site does not have yet.

    At most ``max(0, max_pages - existing)`` pages are created, taken in
    ``urls`` order. Each page is committed on its own, so a failure halfway
    keeps the pages created so far; re-running is safe since known paths
    are skipped.
    """
    result = await db.execute(select(Page.path).where(Page.site_id == site.id))
    known_paths = set(result.scalars().all())
    remaining_slots = max(0, max_pages - len(known_paths))

    created: List[Page] = []
    for url in urls:
        if len(created) >= remaining_slots:
            break

        path = page_path(url)
        if path in known_paths:
            continue

        page = Page(site_id=site.id, path=path, url=url)
        db.add(page)
        await db.commit()

        known_paths.add(path)
        created.append(page)

    return created


async def scrape_site(
    db: AsyncSession,
    site: Site,
    logger: logging.Logger,
    max_pages: int = MAX_PAGES_PER_SITE,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Resolve the site's sitemap and reconcile its pages.

    Never raises for per-site failures: the error message is stored on the
    site instead. The scrape timestamp is refreshed on success and failure.
    """
    site_id = site.id
    domain = site.domain
    sitemap_url = site.sitemap_url
    error: Optional[str] = None

    logger.info(f"Scraping {domain}{site.sitemap_path}...", extra={"site_id": site_id})

    try:
        urls = await fetch_sitemap(sitemap_url, client=client)
        created = await reconcile_pages(db, site, urls, max_pages)
        logger.info(
            f"Found {len(urls)} URLs for {domain}, created {len(created)} new pages",
            extra={"site_id": site_id},
        )
    except Exception as e:
        await db.rollback()
        error = str(e) or e.__class__.__name__
        logger.error(f"Error scraping {domain}: {error}", extra={"site_id": site_id})

    await db.execute(
        update(Site)
        .where(Site.id == site_id)
        .values(last_scraped_sitemap_at=datetime.now(timezone.utc), scrape_sitemap_error=error)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(site)


async def get_sites_to_scrape(db: AsyncSession, limit: int) -> List[Site]:
    """Oldest-attempted sites first; sites never scraped come before all others."""
    query = (
        select(Site)
        .order_by(
            Site.last_scraped_sitemap_at.is_not(None),
            Site.last_scraped_sitemap_at,
            Site.created_at,
        )
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def scrape_sites(
    session_factory: Callable,
    site_ids: List[str],
    concurrency: int,
    logger: logging.Logger,
    max_pages: int = MAX_PAGES_PER_SITE,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Scrape every site in ``site_ids`` order with a worker pool.

    Each worker opens its own session per site; one shared HTTP client serves
    all workers.
    """
    if client is None:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            return await scrape_sites(session_factory, site_ids, concurrency, logger, max_pages, own_client)

    async def handle(site_id: str) -> None:
        async with session_factory() as db:
            site = await db.get(Site, site_id)
            if site is None:
                logger.warning(f"Site {site_id} disappeared before scraping")
                return
            await scrape_site(db, site, logger, max_pages, client=client)

    await run_pool(site_ids, concurrency, handle)


async def run_scrape(
    session_factory: Callable,
    logger: logging.Logger,
    limit: int = settings.SCRAPE_BATCH_LIMIT,
    concurrency: int = settings.MAX_WORKER_CONCURRENCY,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Pick the next ``limit`` sites to scrape and scrape them. Returns the site count."""
    concurrency = min(concurrency, settings.MAX_WORKER_CONCURRENCY)
    logger.info(f"Fetching up to {limit} sites to scrape (concurrency: {concurrency})...")

    async with session_factory() as db:
        sites = await get_sites_to_scrape(db, limit)
        site_ids = [site.id for site in sites]

    if not site_ids:
        logger.info("No sites to scrape.")
        return 0

    logger.info(f"Found {len(site_ids)} sites to scrape.")
    await scrape_sites(session_factory, site_ids, concurrency, logger, client=client)
    logger.info("Done.")
    return len(site_ids)
