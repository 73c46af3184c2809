from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.pages.models.page import Page
from foghorn.features.sites.models.site import Site
from foghorn.features.sites.services.site import get_site_for_user
from foghorn.features.teams.models.team import TeamMember


async def get_pages_in_scope(db: AsyncSession, user_id: str, site_id: Optional[str] = None) -> List[Page]:
    """
    Pages the user may see.

    With ``site_id`` only that site's pages (after checking team membership);
    otherwise the pages of every site of every team the user belongs to.
    """
    if site_id:
        await get_site_for_user(db, site_id, user_id)
        query = select(Page).where(Page.site_id == site_id).order_by(Page.created_at, Page.id)
    else:
        query = (
            select(Page)
            .join(Site, Site.id == Page.site_id)
            .join(TeamMember, TeamMember.team_id == Site.team_id)
            .where(TeamMember.user_id == user_id)
            .order_by(TeamMember.created_at, Site.created_at, Page.created_at, Page.id)
        )

    result = await db.execute(query)
    return list(result.scalars().all())


def filter_pages(pages: List[Page], search: Optional[str]) -> List[Page]:
    """Case-insensitive substring match on url or path."""
    if not search:
        return pages
    needle = search.lower()
    return [page for page in pages if needle in page.url.lower() or needle in page.path.lower()]


async def get_page_for_user(db: AsyncSession, page_id: str, user_id: str) -> Page:
    page = await db.get(Page, page_id)
    if not page:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found.")

    await get_site_for_user(db, page.site_id, user_id)
    return page
