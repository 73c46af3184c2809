"""
Issue Service

Aggregates per-page PageSpeed audit results into a cross-page issue list.
"""
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status

from foghorn.features.issues.schemas.issue import Issue, IssuePage
from foghorn.features.pages.models.page import Page
from foghorn.features.pages.schemas.page import AuditCategory, PageAuditReport


def parse_category(value: Optional[str]) -> Optional[AuditCategory]:
    """
    Validate the ``category`` query value.

    Raises:
        HTTPException: 400 if the value is not one of the four categories
    """
    if not value:
        return None
    try:
        return AuditCategory(value)
    except ValueError:
        allowed = ", ".join(category.value for category in AuditCategory)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid category. Must be one of: {allowed}",
        )


def is_failing(score: Optional[float]) -> bool:
    """Null scores are informational and a score of 1 is a pass."""
    return score is not None and score < 1


def list_issues(pages: Iterable[Page], category: Optional[AuditCategory] = None) -> List[Issue]:
    """
    Group failing audits across ``pages`` by audit id.

    Args:
        pages: Pages already restricted to what the caller may see
        category: Only look at this category when given

    Returns:
        Issues ordered by number of affected pages (most widespread first);
        each issue's pages ordered by score, worst first. Both sorts are
        stable, so ties keep encounter order.
    """
    categories = [category] if category else list(AuditCategory)
    issues: Dict[str, Issue] = {}

    for page in pages:
        if not page.audit_report:
            continue

        report = PageAuditReport.model_validate(page.audit_report)

        for cat in categories:
            for audit in report.category_result(cat).audits:
                if not is_failing(audit.score):
                    continue

                # Keyed by audit id alone; the category comes from the first occurrence
                issue = issues.get(audit.id)
                if issue is None:
                    issue = Issue(audit_id=audit.id, title=audit.title, category=cat, pages=[])
                    issues[audit.id] = issue

                issue.pages.append(
                    IssuePage(
                        page_id=page.id,
                        url=page.url,
                        path=page.path,
                        score=audit.score,
                        display_value=audit.display_value,
                    )
                )

    result = list(issues.values())
    for issue in result:
        issue.pages.sort(key=lambda issue_page: issue_page.score)
    result.sort(key=lambda issue: len(issue.pages), reverse=True)
    return result
