from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.auth.models.user import User
from foghorn.features.auth.routes.auth import get_current_user
from foghorn.features.issues.schemas.issue import IssueListResponse
from foghorn.features.issues.services.issue_service import list_issues, parse_category
from foghorn.features.pages.services.page import get_pages_in_scope
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response

router = APIRouter(prefix="/issues", tags=["Issues"])


@router.get(
    "",
    response_model=dict,
    summary="List issues",
    description="""
    Failing PageSpeed audits grouped across pages.

    - **siteId**: only this site's pages (caller must belong to the site's team)
    - **category**: one of performance, accessibility, bestPractices, seo

    Issues are ordered by the number of affected pages, pages by score (worst first).
    """,
)
async def get_issues(
    site_id: Optional[str] = Query(None, alias="siteId"),
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    audit_category = parse_category(category)
    pages = await get_pages_in_scope(db, current_user.id, site_id)

    return api_response(
        data=IssueListResponse(issues=list_issues(pages, audit_category)),
        message="Issues retrieved successfully",
    )
