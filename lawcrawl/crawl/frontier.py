"""Bounded-concurrency, batch-at-a-time traversal of a site's link graph."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Iterator

from ..errors import FetchError
from ..ingestion.base import BaseParser, PageRecord, make_soup
from ..utils.fetcher import Fetcher
from ..utils.rate_limiter import RateLimiter
from ..utils.urls import ensure_absolute_url
from .discover import LinkDiscoverer
from .visited import VisitedSet

logger = logging.getLogger(__name__)

PageHandler = Callable[[PageRecord], Awaitable[None]]


@dataclass
class CrawlStats:
    visited: int = 0
    failed: int = 0
    leaf_pages: int = 0
    discovered: int = 0
    batches: int = 0


class Frontier:
    """Drive fetch -> parse -> persist -> discover over a site.

    URLs run ``batch_size`` at a time; a batch finishes completely before the
    next one starts, followed by the inter-batch delay. Links found by a batch
    become a nested batch loop that is drained before the next sibling batch.
    The nesting lives on an explicit stack rather than the call stack.

    A failure on one URL is logged and counted; the URL stays visited and the
    rest of the crawl carries on.

    Args:
        fetcher: Page fetcher.
        parser: Extracts records from each page.
        discoverer: Extracts same-site links from each page.
        on_page: Awaited with every page that produced records.
        visited: The run's visited set; a fresh one by default.
        batch_size: URLs in flight at once.
        batch_limiter: Delay applied after every batch.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        parser: BaseParser,
        discoverer: LinkDiscoverer,
        on_page: PageHandler,
        visited: VisitedSet | None = None,
        batch_size: int = 2,
        batch_limiter: RateLimiter | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.fetcher = fetcher
        self.parser = parser
        self.discoverer = discoverer
        self.on_page = on_page
        self.visited = visited if visited is not None else VisitedSet()
        self.batch_size = batch_size
        self.batch_limiter = batch_limiter or RateLimiter(0)
        self.stats = CrawlStats()

    def _batches(self, urls: list[str]) -> Iterator[list[str]]:
        for i in range(0, len(urls), self.batch_size):
            yield urls[i:i + self.batch_size]

    async def run(self, start_urls: Iterable[str]) -> CrawlStats:
        """Crawl until no unvisited links remain."""
        seeds = [ensure_absolute_url(url, url) or url for url in start_urls]
        stack = [self._batches(self.visited.claim(seeds))]

        while stack:
            batch = next(stack[-1], None)
            if batch is None:
                stack.pop()
                continue

            results = await asyncio.gather(*(self._visit(url) for url in batch))
            self.stats.batches += 1
            await self.batch_limiter.wait()

            found: set[str] = set().union(*results)
            fresh = self.visited.claim(sorted(found))
            if fresh:
                self.stats.discovered += len(fresh)
                stack.append(self._batches(fresh))

        logger.info(
            "Crawl finished: %d visited, %d failed, %d leaf pages, %d batches",
            self.stats.visited,
            self.stats.failed,
            self.stats.leaf_pages,
            self.stats.batches,
        )
        return self.stats

    async def _visit(self, url: str) -> set[str]:
        """Process one URL and return the unvisited links found on it."""
        logger.info("Scraping: %s", url)
        self.stats.visited += 1
        try:
            body, _ = await self.fetcher.fetch(url)
            soup = make_soup(body)
            page = self.parser.parse(soup, url)
            new_links = self.discoverer.discover(soup, url, self.visited)
            page.links = sorted(new_links)
        except FetchError as e:
            self.stats.failed += 1
            logger.error("Error scraping %s: %s", url, e.last_error)
            return set()
        except Exception:
            self.stats.failed += 1
            logger.exception("Error processing %s", url)
            return set()

        if page.records:
            self.stats.leaf_pages += 1
            try:
                await self.on_page(page)
            except Exception:
                logger.exception("Error saving records from %s", url)

        return new_links
