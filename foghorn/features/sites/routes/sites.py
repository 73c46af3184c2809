from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.auth.models.user import User
from foghorn.features.auth.routes.auth import get_current_user
from foghorn.features.sites.schemas.site import SiteCreate, SiteResponse, SiteUpdate
from foghorn.features.sites.services.site import (
    create_site,
    delete_site,
    get_site_for_user,
    get_sites_for_user,
    update_site,
)
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response

router = APIRouter(prefix="/sites", tags=["Sites"])


@router.post(
    "",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new site",
    description="Register a site for one of the current user's teams",
)
async def create_site_route(
    request: SiteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    site = await create_site(db, request, current_user.id)
    return api_response(
        data=SiteResponse.model_validate(site),
        message="Site created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get(
    "",
    response_model=dict,
    summary="Get all sites",
    description="Retrieve the sites of every team the current user belongs to",
)
async def get_all_sites(
    team_id: Optional[str] = Query(None, alias="teamId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    sites = await get_sites_for_user(db, current_user.id, team_id)
    return api_response(
        data=[SiteResponse.model_validate(site) for site in sites],
        message="Sites retrieved successfully",
    )


@router.get("/{site_id}", response_model=dict, summary="Get site details")
async def get_site(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    site = await get_site_for_user(db, site_id, current_user.id)
    return api_response(data=SiteResponse.model_validate(site), message="Site retrieved successfully")


@router.patch("/{site_id}", response_model=dict, summary="Update a site's domain or sitemap path")
async def update_site_route(
    site_id: str,
    request: SiteUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    site = await update_site(db, site_id, request, current_user.id)
    return api_response(data=SiteResponse.model_validate(site), message="Site updated successfully")


@router.delete("/{site_id}", response_model=dict, summary="Delete a site")
async def delete_site_route(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_site(db, site_id, current_user.id)
    return api_response(data=None, message="Site deleted successfully")
