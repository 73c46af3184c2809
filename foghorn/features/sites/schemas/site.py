from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _strip_required(v: Optional[str], label: str) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(f"{label} must be at least 1 character.")
    if len(v) > 255:
        raise ValueError(f"{label} must be 255 characters or less.")
    return v


class SiteCreate(BaseModel):
    team_id: str = Field(..., min_length=1)
    domain: str
    sitemap_path: Optional[str] = None

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return _strip_required(v, "Domain")

    @field_validator("sitemap_path")
    @classmethod
    def validate_sitemap_path(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v, "Sitemap path")


class SiteUpdate(BaseModel):
    domain: Optional[str] = None
    sitemap_path: Optional[str] = None

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v, "Domain")

    @field_validator("sitemap_path")
    @classmethod
    def validate_sitemap_path(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v, "Sitemap path")


class SiteResponse(BaseModel):
    id: str
    team_id: str
    domain: str
    sitemap_path: str
    last_scraped_sitemap_at: Optional[datetime]
    scrape_sitemap_error: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SiteToScrape(BaseModel):
    id: str
    domain: str
    sitemap_path: str

    class Config:
        from_attributes = True


class ScrapeResultUpdate(BaseModel):
    """Outcome reported by an external scraper for one site."""
    last_scraped_sitemap_at: datetime
    scrape_sitemap_error: Optional[str] = None
