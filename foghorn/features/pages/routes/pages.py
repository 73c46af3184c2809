from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.auth.models.user import User
from foghorn.features.auth.routes.auth import get_current_user
from foghorn.features.pages.schemas.page import PageResponse
from foghorn.features.pages.services.page import filter_pages, get_page_for_user, get_pages_in_scope
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response

router = APIRouter(prefix="/pages", tags=["Pages"])


@router.get(
    "",
    response_model=dict,
    summary="List pages",
    description="Pages the current user can access, optionally limited to one site and filtered by a search term",
)
async def list_pages(
    site_id: Optional[str] = Query(None, alias="siteId"),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    pages = filter_pages(await get_pages_in_scope(db, current_user.id, site_id), search)
    return api_response(
        data={"pages": [PageResponse.model_validate(page) for page in pages]},
        message="Pages retrieved successfully",
    )


@router.get("/{page_id}", response_model=dict, summary="Get a single page")
async def get_page(
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page = await get_page_for_user(db, page_id, current_user.id)
    return api_response(data={"page": PageResponse.model_validate(page)}, message="Page retrieved successfully")
