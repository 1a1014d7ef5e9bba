"""Exception taxonomy for the crawl pipeline."""

from __future__ import annotations


class LawCrawlError(Exception):
    """Base class for all lawcrawl errors."""


class ConfigurationError(LawCrawlError):
    """Required configuration is missing or malformed. Fatal, raised before any crawling."""


class FetchError(LawCrawlError):
    """A URL could not be retrieved after all retry attempts."""

    def __init__(self, url: str, last_error: BaseException | str | None = None):
        self.url = url
        self.last_error = last_error
        super().__init__(f"Failed to fetch {url}: {last_error}")


class ParseError(LawCrawlError):
    """An expected element is missing from a page."""


class PersistenceError(LawCrawlError):
    """A store write for one entity failed."""

    def __init__(self, kind: str, key: tuple, cause: BaseException | str | None = None):
        self.kind = kind
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to write {kind} {'/'.join(str(k) for k in key)}: {cause}")
