import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from foghorn.features.pages.models.page import Page
from foghorn.features.pages.schemas.page import AuditCategory, PageAuditReport
from foghorn.features.scan.services import audit_service
from foghorn.features.scan.services.audit_service import (
    AUDIT_STRATEGY,
    AuditFetchError,
    audit_page,
    audit_pages,
    build_audit_report,
    build_request_params,
    extract_category,
    extract_field_data,
    get_pages_to_audit,
    run_audits,
)
from foghorn.platform.config import settings

logger = logging.getLogger("test.audit")


def pagespeed_payload(with_field_data=False):
    payload = {
        "lighthouseResult": {
            "fetchTime": "2025-03-01T10:00:00.000Z",
            "finalUrl": "https://example.com/",
            "categories": {
                "performance": {"score": 0.72, "auditRefs": [{"id": "largest-contentful-paint"}, {"id": "missing"}]},
                "accessibility": {"score": 0.9, "auditRefs": [{"id": "color-contrast"}]},
                "best-practices": {"score": 1, "auditRefs": []},
                "seo": {"score": 0.5, "auditRefs": [{"id": "meta-description"}]},
            },
            "audits": {
                "largest-contentful-paint": {
                    "id": "largest-contentful-paint",
                    "title": "Largest Contentful Paint",
                    "score": 0.4,
                    "displayValue": "4.1 s",
                    "numericValue": 4100.5,
                },
                "color-contrast": {
                    "id": "color-contrast",
                    "title": "Background and foreground colors have a sufficient contrast ratio",
                    "score": 0,
                },
                "meta-description": {
                    "id": "meta-description",
                    "title": "Document has a meta description",
                    "score": None,
                },
            },
        }
    }
    if with_field_data:
        payload["loadingExperience"] = {
            "metrics": {
                "LARGEST_CONTENTFUL_PAINT_MS": {
                    "percentile": 2400,
                    "distributions": [
                        {"min": 0, "max": 2500, "proportion": 0.8},
                        {"min": 2500, "max": 4000, "proportion": 0.15},
                        {"min": 4000, "proportion": 0.05},
                    ],
                    "category": "FAST",
                }
            }
        }
    return payload


def pagespeed_client(status_code=200, payload=None, requests=None):
    def handler(request):
        if requests is not None:
            requests.append(request)
        if payload is None:
            return httpx.Response(status_code, text="not json")
        return httpx.Response(status_code, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_request_params_ask_for_all_categories():
    with patch.object(settings, "PAGESPEED_API_KEY", None):
        params = build_request_params("https://example.com/")

    assert ("url", "https://example.com/") in params
    assert ("strategy", AUDIT_STRATEGY) in params
    assert [value for key, value in params if key == "category"] == [
        "performance",
        "accessibility",
        "best-practices",
        "seo",
    ]
    assert not any(key == "key" for key, _ in params)


def test_request_params_include_api_key_when_configured():
    with patch.object(settings, "PAGESPEED_API_KEY", "secret"):
        params = build_request_params("https://example.com/")
    assert ("key", "secret") in params


def test_extract_category_resolves_audit_refs():
    payload = pagespeed_payload()["lighthouseResult"]
    result = extract_category(payload["categories"]["performance"], payload["audits"])

    assert result.score == 0.72
    # refs without a matching audit are skipped
    assert [a.id for a in result.audits] == ["largest-contentful-paint"]
    assert result.audits[0].display_value == "4.1 s"
    assert result.audits[0].numeric_value == 4100.5


def test_extract_category_missing():
    result = extract_category(None, {})
    assert result.score is None
    assert result.audits == []


def test_build_audit_report():
    report = build_audit_report(pagespeed_payload(), duration_ms=1234)

    assert report.fetch_time == "2025-03-01T10:00:00.000Z"
    assert report.final_url == "https://example.com/"
    assert report.duration_ms == 1234
    assert report.best_practices.score == 1
    assert report.seo.audits[0].score is None
    assert report.field_data is None


def test_stored_report_omits_absent_optional_fields():
    stored = build_audit_report(pagespeed_payload(), duration_ms=10).to_storage()

    lcp = stored["performance"]["audits"][0]
    contrast = stored["accessibility"]["audits"][0]
    assert lcp["display_value"] == "4.1 s"
    assert "display_value" not in contrast
    assert "numeric_value" not in contrast
    assert stored["field_data"] is None
    # stored form validates back into the same report
    assert PageAuditReport.model_validate(stored).accessibility.audits[0].display_value is None


def test_field_data_extracted():
    report = build_audit_report(pagespeed_payload(with_field_data=True), duration_ms=10)

    metric = report.field_data["LARGEST_CONTENTFUL_PAINT_MS"]
    assert metric.percentile == 2400
    assert metric.category == "FAST"
    assert metric.distributions[2].max is None


def test_field_data_absent_without_metrics():
    assert extract_field_data(None) is None
    assert extract_field_data({"id": "https://example.com/"}) is None


def test_missing_lighthouse_result_raises():
    with pytest.raises(AuditFetchError):
        build_audit_report({"error": {"message": "quota"}}, duration_ms=1)


def test_category_lighthouse_keys():
    assert AuditCategory.best_practices.value == "bestPractices"
    assert AuditCategory.best_practices.lighthouse_key == "best-practices"
    assert AuditCategory.seo.lighthouse_key == "seo"


@pytest.fixture
async def page(create_user, create_team, create_site, create_page):
    user = await create_user()
    team = await create_team(user.id)
    site = await create_site(team.id)
    return await create_page(site.id, path="/", url="https://example.com/")


@pytest.mark.asyncio
async def test_audit_page_success(db, page):
    requests = []
    async with pagespeed_client(payload=pagespeed_payload(), requests=requests) as client:
        await audit_page(db, page, logger, client)

    assert len(requests) == 1
    assert requests[0].url.params["url"] == "https://example.com/"
    assert page.audit_error is None
    assert page.last_audited_at is not None
    assert page.audit_report["performance"]["score"] == 0.72


@pytest.mark.asyncio
async def test_audit_page_http_error_keeps_previous_report(db, page):
    page.audit_report = {"previous": True}
    page.audit_error = None
    await db.commit()

    async with pagespeed_client(status_code=500, payload={"error": "boom"}) as client:
        await audit_page(db, page, logger, client)

    assert page.audit_error == "HTTP 500 auditing https://example.com/"
    assert page.audit_report == {"previous": True}
    assert page.last_audited_at is not None


@pytest.mark.asyncio
async def test_audit_page_timeout(db, page):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await audit_page(db, page, logger, client)

    assert page.audit_error == "Timeout auditing https://example.com/"


@pytest.mark.asyncio
async def test_audit_page_invalid_json(db, page):
    async with pagespeed_client(payload=None) as client:
        await audit_page(db, page, logger, client)

    assert page.audit_error == "Invalid JSON auditing https://example.com/"


@pytest.mark.asyncio
async def test_success_clears_previous_error(db, page):
    page.audit_error = "Timeout auditing https://example.com/"
    await db.commit()

    async with pagespeed_client(payload=pagespeed_payload()) as client:
        await audit_page(db, page, logger, client)

    assert page.audit_error is None
    assert page.audit_report is not None


@pytest.mark.asyncio
async def test_pages_to_audit_order(db, page, create_page):
    now = datetime.now(timezone.utc)
    page.last_audited_at = now
    await db.commit()
    older = await create_page(page.site_id, path="/older", last_audited_at=now - timedelta(hours=5))
    never = await create_page(page.site_id, path="/never")

    pages = await get_pages_to_audit(db, limit=10)
    assert [p.id for p in pages] == [never.id, older.id, page.id]


@pytest.mark.asyncio
async def test_audit_pages_caps_concurrency_and_passes_delay(session_factory):
    with patch.object(audit_service, "run_pool", new_callable=AsyncMock) as mock_pool:
        async with pagespeed_client(payload=pagespeed_payload()) as client:
            await audit_pages(session_factory, ["a", "b"], 20, logger, delay_seconds=3, client=client)

    args, kwargs = mock_pool.call_args
    assert args[0] == ["a", "b"]
    assert args[1] == settings.MAX_WORKER_CONCURRENCY
    assert kwargs["delay_seconds"] == 3


@pytest.mark.asyncio
async def test_run_audits_end_to_end(session_factory, page):
    async with pagespeed_client(payload=pagespeed_payload()) as client:
        count = await run_audits(session_factory, logger, limit=5, concurrency=1, delay_seconds=0, client=client)

    assert count == 1
    async with session_factory() as db:
        stored = await db.get(Page, page.id)
        assert stored.audit_report["seo"]["score"] == 0.5
        assert stored.audit_error is None


@pytest.mark.asyncio
async def test_run_audits_without_pages(session_factory):
    async with pagespeed_client(payload=pagespeed_payload()) as client:
        assert await run_audits(session_factory, logger, limit=5, concurrency=1, delay_seconds=0, client=client) == 0


def test_explicit_null_display_value_is_kept():
    category = {"score": 0.5, "auditRefs": [{"id": "with-null"}, {"id": "without"}]}
    audits = {
        "with-null": {"id": "with-null", "title": "With null", "score": 0, "displayValue": None, "numericValue": None},
        "without": {"id": "without", "title": "Without", "score": 0},
    }

    stored = extract_category(category, audits).model_dump(exclude_unset=True)

    assert stored["audits"][0]["display_value"] is None
    assert stored["audits"][0]["numeric_value"] is None
    assert "display_value" not in stored["audits"][1]
    assert "numeric_value" not in stored["audits"][1]


def test_field_data_tolerates_incomplete_distributions():
    field_data = extract_field_data(
        {
            "metrics": {
                "CUMULATIVE_LAYOUT_SHIFT_SCORE": {
                    "percentile": 5,
                    "distributions": [{"min": 0, "max": 10}, {"proportion": 0.2}],
                    "category": "FAST",
                }
            }
        }
    )

    distributions = field_data["CUMULATIVE_LAYOUT_SHIFT_SCORE"].distributions
    assert distributions[0].proportion is None
    assert distributions[1].min is None
    assert distributions[1].proportion == 0.2
