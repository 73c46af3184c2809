from typing import List, Optional

from pydantic import BaseModel

from foghorn.features.pages.schemas.page import AuditCategory


class IssuePage(BaseModel):
    page_id: str
    url: str
    path: str
    score: float
    display_value: Optional[str] = None


class Issue(BaseModel):
    """One failing audit id and every page it fails on."""
    audit_id: str
    title: str
    category: AuditCategory
    pages: List[IssuePage] = []


class IssueListResponse(BaseModel):
    issues: List[Issue]
