"""Same-site link extraction."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from ..ingestion.base import make_soup
from ..utils.urls import ensure_absolute_url, is_same_site
from .visited import VisitedSet

logger = logging.getLogger(__name__)


class LinkDiscoverer:
    """Find links on a page that stay under ``base_url`` and are not yet visited.

    Args:
        base_url: Site prefix every kept link must start with.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url

    def links(self, body: str | BeautifulSoup, page_url: str) -> list[str]:
        """Every same-site absolute link on the page, in document order, without duplicates."""
        soup = body if isinstance(body, BeautifulSoup) else make_soup(body)
        found: dict[str, None] = {}
        for a in soup.find_all("a", href=True):
            url = ensure_absolute_url(a["href"], page_url)
            if url and is_same_site(url, self.base_url):
                found[url] = None
        return list(found)

    def discover(self, body: str | BeautifulSoup, page_url: str, visited: VisitedSet) -> set[str]:
        """Same-site links on the page that ``visited`` has not seen."""
        new_links = visited.unseen(self.links(body, page_url))
        if new_links:
            logger.debug("Found %d new links on %s", len(new_links), page_url)
        return new_links
