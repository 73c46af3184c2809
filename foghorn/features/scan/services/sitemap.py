"""
Sitemap resolution.

Turns a sitemap URL into a flat list of page URLs, following nested sitemap
indexes up to ``settings.SITEMAP_MAX_DEPTH`` levels below the root document.
"""
import asyncio
import logging
from typing import List, Optional, Tuple, Union

import httpx
from bs4 import BeautifulSoup

from foghorn.platform.config import settings

logger = logging.getLogger(__name__)

SITEMAP_INDEX = "sitemapindex"
URL_SET = "urlset"


class SitemapFetchError(Exception):
    """A sitemap document could not be fetched (timeout or non-2xx)."""


def parse_sitemap(xml: Union[str, bytes]) -> Tuple[Optional[str], List[str]]:
    """
    Parse a sitemap document.

    Returns the document kind (``"sitemapindex"``, ``"urlset"`` or ``None`` for
    anything else) and the ``loc`` values of its entries in document order.
    A document with a single entry yields a one-element list.
    """
    soup = BeautifulSoup(xml, "xml")

    for kind, entry_tag in ((SITEMAP_INDEX, "sitemap"), (URL_SET, "url")):
        root = soup.find(kind, recursive=False)
        if root is None:
            continue

        locs = []
        for entry in root.find_all(entry_tag, recursive=False):
            # recursive=False skips <image:loc> and friends nested deeper
            loc = entry.find("loc", recursive=False)
            if loc is None:
                continue
            value = loc.get_text(strip=True)
            if value:
                locs.append(value)
        return kind, locs

    return None, []


async def fetch_sitemap(
    url: str,
    depth: int = 0,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    """
    Fetch ``url`` and resolve it into page URLs.

    Sitemap indexes are resolved recursively and their results concatenated in
    document order. Branches deeper than ``SITEMAP_MAX_DEPTH`` resolve to an
    empty list. URLs are not deduplicated here.

    Raises:
        SitemapFetchError: on timeout or non-2xx response for any document in
            the tree; there is no partial result.
    """
    if depth > settings.SITEMAP_MAX_DEPTH:
        logger.warning(f"Sitemap depth limit reached, skipping {url}")
        return []

    if client is None:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            return await fetch_sitemap(url, depth, own_client)

    try:
        # wait_for bounds the whole request; httpx timeouts only bound each phase
        response = await asyncio.wait_for(
            client.get(url, timeout=settings.SITEMAP_FETCH_TIMEOUT), settings.SITEMAP_FETCH_TIMEOUT
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise SitemapFetchError(f"Timeout fetching {url}") from e

    if not response.is_success:
        raise SitemapFetchError(f"HTTP {response.status_code} fetching {url}")

    kind, locs = parse_sitemap(response.content)

    if kind != SITEMAP_INDEX:
        return locs

    pages: List[str] = []
    for nested_url in locs:
        pages.extend(await fetch_sitemap(nested_url, depth + 1, client))
    return pages
