"""Base parser and canonical records for extracted legal-code hierarchies."""

from __future__ import annotations

import abc
import logging
from dataclasses import asdict, dataclass, field
from typing import Iterator, Optional, Union

from bs4 import BeautifulSoup

from ..errors import ParseError
from ..normalization.text_cleaner import normalize_whitespace

logger = logging.getLogger(__name__)

CONTENT_NOT_AVAILABLE = "Content not available"
CONTENT_FETCH_FAILED = "Failed to fetch content"


@dataclass
class Part:
    """Optional top tier above titles (Massachusetts only)."""

    number: str
    title: str
    url: str

    kind = "part"

    @property
    def key(self) -> tuple:
        return (self.number,)

    def fields(self) -> dict:
        return asdict(self)


@dataclass
class Title:
    """A title (top-level division) of a state code."""

    title_number: str
    display_name: str
    description: str
    url: str
    part_number: Optional[str] = None

    kind = "title"

    @property
    def key(self) -> tuple:
        if self.part_number:
            return (self.part_number, self.title_number)
        return (self.title_number,)

    def fields(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class Chapter:
    """A chapter within a title."""

    title_number: str
    chapter_number: str
    display_name: str
    url: str
    part_number: Optional[str] = None

    kind = "chapter"

    @property
    def key(self) -> tuple:
        key = (self.title_number, self.chapter_number)
        return (self.part_number, *key) if self.part_number else key

    def fields(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class Section:
    """A statute section, the leaf of the hierarchy.

    ``content`` always holds text or one of the placeholder strings, never None.
    """

    title_number: str
    chapter_number: str
    section_number: str
    display_name: str
    url: str
    section_title: str = ""
    content: str = CONTENT_NOT_AVAILABLE
    part_number: Optional[str] = None

    kind = "section"

    @property
    def key(self) -> tuple:
        key = (self.title_number, self.chapter_number, self.section_number)
        return (self.part_number, *key) if self.part_number else key

    def fields(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


Record = Union[Part, Title, Chapter, Section]


@dataclass
class PageRecord:
    """Everything extracted from one fetched page.

    ``records`` are ordered parent-first (title before chapter before section).
    """

    url: str
    records: list[Record] = field(default_factory=list)
    links: list[str] = field(default_factory=list)

    @property
    def sections(self) -> list[Section]:
        return [r for r in self.records if isinstance(r, Section)]

    @property
    def is_leaf(self) -> bool:
        return bool(self.sections)


class BaseParser(abc.ABC):
    """Abstract base class for page parsers.

    Subclasses implement :meth:`extract`, a generator over a parsed document.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abc.abstractmethod
    def extract(self, soup: BeautifulSoup, page_url: str, **context) -> Iterator[Record]:
        """Yield records found in ``soup``.

        Args:
            soup: Parsed page.
            page_url: Absolute URL the page was fetched from.
            **context: Parent identifiers (``part_number``, ``title_number``, ...).
        """

    def parse(self, body: str | BeautifulSoup, page_url: str, **context) -> PageRecord:
        """Parse a page body into a :class:`PageRecord`."""
        soup = body if isinstance(body, BeautifulSoup) else make_soup(body)
        return PageRecord(url=page_url, records=list(self.extract(soup, page_url, **context)))


def make_soup(body: str) -> BeautifulSoup:
    return BeautifulSoup(body, "html.parser")


def select_text(root, selector: str, index: int = 0) -> str:
    """Whitespace-normalized text of the ``index``-th match, raising ParseError if absent."""
    matches = root.select(selector)
    if len(matches) <= index:
        raise ParseError(f"No element #{index} for selector {selector!r}")
    return normalize_whitespace(matches[index].get_text(" "))


def extract_content(body: str | BeautifulSoup, selector: str) -> str:
    """Text of a single content container, or the placeholder when it is missing."""
    soup = body if isinstance(body, BeautifulSoup) else make_soup(body)
    try:
        text = select_text(soup, selector)
    except ParseError as e:
        logger.debug("%s", e)
        return CONTENT_NOT_AVAILABLE
    return text or CONTENT_NOT_AVAILABLE
