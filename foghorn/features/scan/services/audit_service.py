"""
PageSpeed Insights audits.

Calls the PageSpeed API for a page, normalizes the Lighthouse payload into a
``PageAuditReport`` and stores it on the page.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.pages.models.page import Page
from foghorn.features.pages.schemas.page import (
    AuditCategory,
    AuditResult,
    CategoryResult,
    FieldMetric,
    PageAuditReport,
)
from foghorn.platform.config import settings
from foghorn.platform.worker_pool import run_pool

AUDIT_STRATEGY = "mobile"


class AuditFetchError(Exception):
    """The PageSpeed API call failed or returned an unusable payload."""


def build_request_params(url: str) -> List[Tuple[str, str]]:
    params = [("url", url), ("strategy", AUDIT_STRATEGY)]
    params.extend(("category", category.lighthouse_key) for category in AuditCategory)
    if settings.PAGESPEED_API_KEY:
        params.append(("key", settings.PAGESPEED_API_KEY))
    return params


def extract_category(
    category_data: Optional[Dict[str, Any]],
    all_audits: Dict[str, Any],
) -> CategoryResult:
    """
    Resolve a Lighthouse category's ``auditRefs`` against the global audit map.

    ``display_value`` / ``numeric_value`` are only set when the audit carries
    the key (an explicit null is kept), so they stay out of the stored report
    otherwise.
    """
    if not isinstance(category_data, dict):
        return CategoryResult(score=None, audits=[])

    audits = []
    for ref in category_data.get("auditRefs") or []:
        ref_id = ref.get("id") if isinstance(ref, dict) else None
        audit = all_audits.get(ref_id) if ref_id else None
        if not isinstance(audit, dict):
            continue

        fields = {
            "id": audit.get("id", ref_id),
            "title": audit.get("title", ""),
            "score": audit.get("score"),
        }
        if "displayValue" in audit:
            fields["display_value"] = audit["displayValue"]
        if "numericValue" in audit:
            fields["numeric_value"] = audit["numericValue"]

        audits.append(AuditResult(**fields))

    return CategoryResult(score=category_data.get("score"), audits=audits)


def extract_field_data(loading_experience: Optional[Dict[str, Any]]) -> Optional[Dict[str, FieldMetric]]:
    """Real-user (CrUX) metrics, or None when the API has none for the URL."""
    if not isinstance(loading_experience, dict):
        return None

    metrics = loading_experience.get("metrics")
    if not isinstance(metrics, dict):
        return None

    field_data = {}
    for name, value in metrics.items():
        if not isinstance(value, dict):
            continue
        field_data[name] = FieldMetric(
            percentile=value.get("percentile"),
            distributions=value.get("distributions") or [],
            category=value.get("category"),
        )
    return field_data


def build_audit_report(data: Any, duration_ms: int) -> PageAuditReport:
    if not isinstance(data, dict) or not isinstance(data.get("lighthouseResult"), dict):
        raise AuditFetchError("PageSpeed response is missing lighthouseResult")

    lighthouse = data["lighthouseResult"]
    categories = lighthouse.get("categories") or {}
    all_audits = lighthouse.get("audits") or {}

    def category(cat: AuditCategory) -> CategoryResult:
        return extract_category(categories.get(cat.lighthouse_key), all_audits)

    return PageAuditReport(
        fetch_time=lighthouse.get("fetchTime"),
        final_url=lighthouse.get("finalUrl"),
        duration_ms=duration_ms,
        performance=category(AuditCategory.performance),
        accessibility=category(AuditCategory.accessibility),
        best_practices=category(AuditCategory.best_practices),
        seo=category(AuditCategory.seo),
        field_data=extract_field_data(data.get("loadingExperience")),
    )


async def fetch_audit_report(url: str, client: httpx.AsyncClient) -> PageAuditReport:
    start = time.monotonic()
    try:
        response = await asyncio.wait_for(
            client.get(
                settings.PAGESPEED_API_URL,
                params=build_request_params(url),
                timeout=settings.AUDIT_FETCH_TIMEOUT,
            ),
            settings.AUDIT_FETCH_TIMEOUT,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise AuditFetchError(f"Timeout auditing {url}") from e
    duration_ms = int((time.monotonic() - start) * 1000)

    if not response.is_success:
        raise AuditFetchError(f"HTTP {response.status_code} auditing {url}")

    try:
        data = response.json()
    except ValueError as e:
        raise AuditFetchError(f"Invalid JSON auditing {url}") from e

    return build_audit_report(data, duration_ms)


async def audit_page(
    db: AsyncSession,
    page: Page,
    logger: logging.Logger,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Audit one page and persist the outcome.

    Success replaces ``audit_report`` and clears ``audit_error``; failure only
    records ``audit_error``. ``last_audited_at`` is refreshed either way.
    """
    if client is None:
        async with httpx.AsyncClient() as own_client:
            return await audit_page(db, page, logger, own_client)

    url = page.url
    logger.info(f"Auditing {url}...", extra={"page_id": page.id})

    try:
        report = await fetch_audit_report(url, client)
        page.audit_report = report.to_storage()
        page.audit_error = None
        logger.info(
            f"Audited {url} in {report.duration_ms}ms (performance: {report.performance.score})",
            extra={"page_id": page.id},
        )
    except Exception as e:
        page.audit_error = str(e) or e.__class__.__name__
        logger.error(f"Error auditing {url}: {page.audit_error}", extra={"page_id": page.id})

    page.last_audited_at = datetime.now(timezone.utc)
    await db.commit()


async def get_pages_to_audit(db: AsyncSession, limit: int) -> List[Page]:
    """Least recently audited pages first; never-audited pages lead."""
    query = (
        select(Page)
        .order_by(
            Page.last_audited_at.is_not(None),
            Page.last_audited_at,
            Page.created_at,
        )
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def audit_pages(
    session_factory: Callable,
    page_ids: List[str],
    concurrency: int,
    logger: logging.Logger,
    delay_seconds: float = settings.AUDIT_DELAY_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Audit pages with at most ``MAX_WORKER_CONCURRENCY`` workers, each waiting
    ``delay_seconds`` between its own requests.
    """
    if client is None:
        async with httpx.AsyncClient() as own_client:
            return await audit_pages(
                session_factory, page_ids, concurrency, logger, delay_seconds, own_client
            )

    async def handle(page_id: str) -> None:
        async with session_factory() as db:
            page = await db.get(Page, page_id)
            if page is None:
                logger.warning(f"Page {page_id} disappeared before auditing")
                return
            await audit_page(db, page, logger, client)

    concurrency = min(concurrency, settings.MAX_WORKER_CONCURRENCY)
    await run_pool(page_ids, concurrency, handle, delay_seconds=max(delay_seconds, 0.0))


async def run_audits(
    session_factory: Callable,
    logger: logging.Logger,
    limit: int = settings.AUDIT_BATCH_LIMIT,
    concurrency: int = settings.MAX_WORKER_CONCURRENCY,
    delay_seconds: float = settings.AUDIT_DELAY_SECONDS,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Pick the next ``limit`` pages to audit and audit them. Returns the page count."""
    concurrency = min(concurrency, settings.MAX_WORKER_CONCURRENCY)
    logger.info(f"Fetching up to {limit} pages to audit (concurrency: {concurrency})...")

    async with session_factory() as db:
        pages = await get_pages_to_audit(db, limit)
        page_ids = [page.id for page in pages]

    if not page_ids:
        logger.info("No pages to audit.")
        return 0

    logger.info(f"Found {len(page_ids)} pages to audit.")
    await audit_pages(session_factory, page_ids, concurrency, logger, delay_seconds, client)
    logger.info("Done.")
    return len(page_ids)
