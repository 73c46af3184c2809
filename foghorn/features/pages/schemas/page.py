import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AuditCategory(str, enum.Enum):
    """The four Lighthouse categories a page report is split into."""
    performance = "performance"
    accessibility = "accessibility"
    best_practices = "bestPractices"
    seo = "seo"

    @property
    def lighthouse_key(self) -> str:
        """Category id as it appears in ``lighthouseResult.categories``."""
        if self is AuditCategory.best_practices:
            return "best-practices"
        return self.value


class AuditResult(BaseModel):
    id: str
    title: str
    score: Optional[float] = None
    display_value: Optional[str] = None
    numeric_value: Optional[float] = None


class CategoryResult(BaseModel):
    score: Optional[float] = None
    audits: List[AuditResult] = []


class FieldMetricDistribution(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    proportion: Optional[float] = None


class FieldMetric(BaseModel):
    percentile: Optional[float] = None
    distributions: List[FieldMetricDistribution] = []
    category: Optional[str] = None


class PageAuditReport(BaseModel):
    """
    Normalized PageSpeed Insights snapshot stored on ``Page.audit_report``.

    Stored with ``to_storage()``: optional audit fields that were absent in the
    API response are omitted, while ``field_data`` is always present (``None``
    when the API had no real-user data).
    """
    fetch_time: Optional[str] = None
    final_url: Optional[str] = None
    duration_ms: int
    performance: CategoryResult
    accessibility: CategoryResult
    best_practices: CategoryResult
    seo: CategoryResult
    field_data: Optional[Dict[str, FieldMetric]] = None

    def category_result(self, category: AuditCategory) -> CategoryResult:
        if category is AuditCategory.performance:
            return self.performance
        if category is AuditCategory.accessibility:
            return self.accessibility
        if category is AuditCategory.best_practices:
            return self.best_practices
        if category is AuditCategory.seo:
            return self.seo
        raise ValueError(f"Unknown audit category: {category}")

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class PageResponse(BaseModel):
    id: str
    site_id: str
    path: str
    url: str
    last_audited_at: Optional[datetime] = None
    audit_error: Optional[str] = None
    audit_report: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
