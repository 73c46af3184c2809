from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from foghorn.platform.db.base import BaseModel

DEFAULT_SITEMAP_PATH = "/sitemap.xml"


class Site(BaseModel):
    """
    A monitored website owned by a team.

    ``last_scraped_sitemap_at`` and ``scrape_sitemap_error`` are written together
    on every scrape attempt: a failed attempt still refreshes the timestamp and
    a successful one clears the error.
    """
    __tablename__ = "sites"

    team_id = Column(String, ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=False)
    domain = Column(String(255), nullable=False)
    sitemap_path = Column(String(255), default=DEFAULT_SITEMAP_PATH, nullable=False)

    last_scraped_sitemap_at = Column(DateTime(timezone=True), nullable=True)
    scrape_sitemap_error = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_sites_last_scraped_sitemap_at", "last_scraped_sitemap_at"),
    )

    @property
    def sitemap_url(self) -> str:
        return f"https://{self.domain}{self.sitemap_path}"
