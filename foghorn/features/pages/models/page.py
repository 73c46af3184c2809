from sqlalchemy import JSON, Column, DateTime, Index, String, Text, UniqueConstraint

from foghorn.platform.db.base import BaseModel


class Page(BaseModel):
    """
    A page discovered from a site's sitemap.

    ``path`` is the per-site dedup key. ``site_id`` carries no foreign key:
    deleting a site leaves its pages orphaned rather than removing them.
    ``audit_report`` holds the last PageSpeed snapshot (see
    ``foghorn.features.pages.schemas.page.PageAuditReport``) and is replaced
    wholesale on every successful audit.
    """
    __tablename__ = "pages"

    site_id = Column(String, index=True, nullable=False)
    path = Column(String(2048), nullable=False)
    url = Column(String(2048), nullable=False)

    last_audited_at = Column(DateTime(timezone=True), nullable=True)
    audit_error = Column(Text, nullable=True)
    audit_report = Column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("site_id", "path", name="uq_page_site_path"),
        Index("ix_pages_last_audited_at", "last_audited_at"),
    )
