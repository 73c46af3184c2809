from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.scan.services.scrape_service import get_sites_to_scrape
from foghorn.features.sites.schemas.site import ScrapeResultUpdate, SiteToScrape
from foghorn.features.sites.services.site import record_scrape_result
from foghorn.platform.config import settings
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response


async def verify_internal_token(x_internal_token: str = Header(None)):
    if not x_internal_token or x_internal_token != settings.INTERNAL_API_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_token)],
)


@router.get("/sites/to-scrape", response_model=dict, summary="Next sites due for a sitemap scrape")
async def sites_to_scrape(
    limit: int = Query(settings.SCRAPE_BATCH_LIMIT, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    sites = await get_sites_to_scrape(db, limit)
    return api_response(
        data={"sites": [SiteToScrape.model_validate(site) for site in sites]},
        message="Sites retrieved successfully",
    )


@router.patch("/sites/{site_id}/scrape-result", response_model=dict, summary="Record a scrape outcome")
async def scrape_result(
    site_id: str,
    request: ScrapeResultUpdate,
    db: AsyncSession = Depends(get_db),
):
    await record_scrape_result(db, site_id, request)
    return api_response(data={"success": True}, message="Scrape result recorded")
