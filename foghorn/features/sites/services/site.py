from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.sites.models.site import DEFAULT_SITEMAP_PATH, Site
from foghorn.features.sites.schemas.site import ScrapeResultUpdate, SiteCreate, SiteUpdate
from foghorn.features.teams.models.team import TeamMember
from foghorn.features.teams.services.team import require_team_membership


async def create_site(db: AsyncSession, site_data: SiteCreate, user_id: str) -> Site:
    await require_team_membership(db, site_data.team_id, user_id)

    site = Site(
        team_id=site_data.team_id,
        domain=site_data.domain,
        sitemap_path=site_data.sitemap_path or DEFAULT_SITEMAP_PATH,
    )
    db.add(site)
    await db.commit()
    await db.refresh(site)
    return site


async def get_sites_for_user(db: AsyncSession, user_id: str, team_id: Optional[str] = None) -> List[Site]:
    """Sites of every team the user belongs to, or of one team when ``team_id`` is given."""
    if team_id:
        await require_team_membership(db, team_id, user_id)
        query = select(Site).where(Site.team_id == team_id)
    else:
        query = (
            select(Site)
            .join(TeamMember, TeamMember.team_id == Site.team_id)
            .where(TeamMember.user_id == user_id)
        )

    result = await db.execute(query.order_by(Site.created_at))
    return list(result.scalars().all())


async def get_site_for_user(db: AsyncSession, site_id: str, user_id: str) -> Site:
    site = await db.get(Site, site_id)
    if not site:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found.")

    await require_team_membership(db, site.team_id, user_id)
    return site


async def update_site(db: AsyncSession, site_id: str, site_data: SiteUpdate, user_id: str) -> Site:
    site = await get_site_for_user(db, site_id, user_id)

    for key, value in site_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(site, key, value)

    await db.commit()
    await db.refresh(site)
    return site


async def delete_site(db: AsyncSession, site_id: str, user_id: str) -> bool:
    """Delete a site. Its pages are left in place, orphaned."""
    site = await get_site_for_user(db, site_id, user_id)
    await db.delete(site)
    await db.commit()
    return True


async def record_scrape_result(db: AsyncSession, site_id: str, outcome: ScrapeResultUpdate) -> Site:
    site = await db.get(Site, site_id)
    if not site:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found.")

    site.last_scraped_sitemap_at = outcome.last_scraped_sitemap_at
    site.scrape_sitemap_error = outcome.scrape_sitemap_error
    await db.commit()
    await db.refresh(site)
    return site
