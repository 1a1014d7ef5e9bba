"""Wire fetcher, parsers, frontier and sink into one scraping run for a site."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from .crawl import CrawlStats, Frontier, LinkDiscoverer, VisitedSet
from .errors import ConfigurationError, FetchError, PersistenceError
from .ingestion import (
    CONTENT_FETCH_FAILED,
    BaseParser,
    Chapter,
    NestedParser,
    PageRecord,
    Record,
    Section,
    TabularParser,
    extract_content,
)
from .settings import SiteConfig, TierConfig
from .storage import BaseSink
from .utils.fetcher import Fetcher
from .utils.rate_limiter import RateLimiter, Sleep

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class RunSummary:
    """What one run managed to persist and what it had to skip."""

    saved: Counter = field(default_factory=Counter)
    failed_pages: int = 0
    failed_writes: int = 0
    crawl: Optional[CrawlStats] = None

    def describe(self) -> str:
        saved = ", ".join(f"{count} {kind}s" for kind, count in sorted(self.saved.items())) or "nothing"
        return f"saved {saved}; {self.failed_pages} failed pages, {self.failed_writes} failed writes"


def build_parser(site: SiteConfig) -> BaseParser:
    """Parser for link-following mode."""
    if site.parser == "nested":
        return NestedParser(site.base_url, site.selectors)
    raise ConfigurationError(f"Site '{site.slug}' has no usable parser for crawl mode: {site.parser!r}")


class Pipeline:
    """One scraping run against one site.

    ``crawl`` sites are handed to the :class:`Frontier` for exhaustive
    link-following. ``tiered`` sites run strict phases: parts, then titles,
    then chapters, then sections; each phase finishes before the next begins
    and only children of successfully saved parents are visited.

    Args:
        site: Site definition.
        sink: Where records go.
        fetcher: HTTP fetcher.
        renderer: Optional headless renderer for tiers with ``render: true``.
        sleep: Coroutine used for inter-batch delays.
    """

    def __init__(
        self,
        site: SiteConfig,
        sink: BaseSink,
        fetcher: Fetcher,
        renderer=None,
        sleep: Sleep | None = None,
    ):
        self.site = site
        self.sink = sink
        self.fetcher = fetcher
        self.renderer = renderer
        self.batch_limiter = RateLimiter(site.crawl.batch_delay, sleep=sleep)
        self.summary = RunSummary()

    async def run(self, start_url: str | None = None) -> RunSummary:
        start_url = start_url or self.site.start_url
        logger.info("Starting %s run for %s at %s", self.site.mode, self.site.name, start_url)

        try:
            await self.sink.initialize_state(self.site.name, self.site.abbr)
        except PersistenceError as e:
            logger.error("%s", e)
            self.summary.failed_writes += 1

        try:
            if self.site.mode == "crawl":
                await self.run_crawl(start_url)
            else:
                await self.run_tiered(start_url)
        finally:
            await self.sink.close()

        logger.info("Finished %s: %s", self.site.name, self.summary.describe())
        return self.summary

    # ================================================================
    # Link-following mode
    # ================================================================

    async def run_crawl(self, start_url: str) -> CrawlStats:
        frontier = Frontier(
            fetcher=self.fetcher,
            parser=build_parser(self.site),
            discoverer=LinkDiscoverer(self.site.base_url),
            on_page=self._save_page,
            visited=VisitedSet(),
            batch_size=self.site.crawl.batch_size,
            batch_limiter=self.batch_limiter,
        )
        self.summary.crawl = await frontier.run([start_url])
        self.summary.failed_pages += self.summary.crawl.failed
        return self.summary.crawl

    async def _save_page(self, page: PageRecord) -> None:
        if await self._save(page.records):
            for section in page.sections:
                logger.info(
                    "Successfully saved section: Title %s, Chapter %s, Section %s",
                    section.title_number,
                    section.chapter_number,
                    section.section_number,
                )

    # ================================================================
    # Tiered (three-pass) mode
    # ================================================================

    async def run_tiered(self, start_url: str) -> None:
        tiers = self.site.tiers

        if "parts" in tiers:
            parts = await self._listing_phase(tiers["parts"], [(start_url, {})])
            title_sources = [(p.url, {"part_number": p.number}) for p in parts]
        else:
            title_sources = [(start_url, {})]

        titles = await self._listing_phase(tiers["titles"], title_sources)
        if "chapters" not in tiers:
            return

        chapters = await self._listing_phase(
            tiers["chapters"],
            [(t.url, {"title_number": t.title_number, "part_number": t.part_number}) for t in titles],
        )
        if "sections" not in tiers:
            return

        await self._section_phase(tiers["sections"], chapters)

    async def _listing_phase(self, tier: TierConfig, sources: list[tuple[str, dict]]) -> list[Record]:
        """Fetch and parse every listing page of one tier; return the saved records."""
        logger.info("Fetching %s from %d page(s)", tier.kind, len(sources))
        parser = TabularParser(self.site.base_url, tier)

        async def list_page(source: tuple[str, dict]) -> list[Record]:
            url, context = source
            records = await self._list_records(parser, tier, url, context)
            return [r for r in records if await self._save([r])]

        saved = [r for page in await self._in_batches(sources, list_page) for r in page]
        await self.sink.flush()
        logger.info("Extracted %d %s record(s)", len(saved), tier.kind)
        return saved

    async def _section_phase(self, tier: TierConfig, chapters: list[Chapter]) -> None:
        parser = TabularParser(self.site.base_url, tier)

        async def chapter_sections(chapter: Chapter) -> list[Section]:
            context = {
                "part_number": chapter.part_number,
                "title_number": chapter.title_number,
                "chapter_number": chapter.chapter_number,
            }
            sections = await self._list_records(parser, tier, chapter.url, context)
            saved = []
            for section in sections:
                section.content = await self._section_content(tier, section)
                if await self._save([section]):
                    saved.append(section)
            return saved

        logger.info("Fetching sections for %d chapter(s)", len(chapters))
        await self._in_batches(chapters, chapter_sections)
        await self.sink.flush()

    async def _list_records(self, parser: TabularParser, tier: TierConfig, url: str, context: dict) -> list:
        context = {k: v for k, v in context.items() if v is not None}
        try:
            body = await self._load(url, tier.render, tier.wait_for)
        except FetchError as e:
            logger.error("Error fetching %s from %s: %s", tier.kind, url, e.last_error)
            self.summary.failed_pages += 1
            return []
        try:
            page = parser.parse(body, url, **context)
        except Exception:
            logger.exception("Error parsing %s from %s", tier.kind, url)
            self.summary.failed_pages += 1
            return []
        logger.info("Found %d %s(s) on %s", len(page.records), tier.kind, url)
        return page.records

    async def _section_content(self, tier: TierConfig, section: Section) -> str:
        if not tier.content:
            return section.content
        try:
            body = await self._load(section.url, tier.render, tier.content)
        except FetchError as e:
            logger.error("Error fetching content for Section %s: %s", section.section_number, e.last_error)
            self.summary.failed_pages += 1
            return CONTENT_FETCH_FAILED
        logger.info("Extracted content for Section %s", section.section_number)
        return extract_content(body, tier.content)

    # ================================================================
    # Shared helpers
    # ================================================================

    async def _load(self, url: str, render: bool, wait_for: str | None) -> str:
        if render and self.renderer is not None:
            return await self.renderer.render(url, wait_for)
        body, _ = await self.fetcher.fetch(url)
        return body

    async def _save(self, records: Iterable[Record]) -> bool:
        records = list(records)
        try:
            await self.sink.upsert_hierarchy(records)
        except PersistenceError as e:
            logger.error("%s", e)
            self.summary.failed_writes += 1
            return False
        self.summary.saved.update(r.kind for r in records)
        return True

    async def _in_batches(self, items: list[T], func: Callable[[T], Awaitable[list[R]]]) -> list[list[R]]:
        """Run ``func`` over ``items`` ``batch_size`` at a time, waiting between batches."""
        size = self.site.crawl.batch_size
        results: list[list[R]] = []
        for i in range(0, len(items), size):
            results.extend(await asyncio.gather(*(func(item) for item in items[i:i + size])))
            await self.batch_limiter.wait()
        return results
