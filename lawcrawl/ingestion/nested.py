"""Nested-structure extraction for breadcrumb-addressed section pages (Florida Statutes).

The breadcrumb trail gives the hierarchy path, the section body is a sequence
of nested blocks: section intro, subsections, paragraphs, then history and
note annotations.
"""

from __future__ import annotations

import re
from typing import Iterator, Optional

from bs4 import BeautifulSoup, Tag

from ..errors import ParseError
from ..normalization.text_cleaner import normalize_whitespace
from ..utils.urls import ensure_absolute_url
from .base import CONTENT_NOT_AVAILABLE, BaseParser, Chapter, Record, Section, Title, select_text

DEFAULT_SELECTORS = {
    "breadcrumbs": "#breadcrumbs",
    "title_toc": ".miniStatuteTOC span.descript",
    "catchline": "span.CatchlineText",
    "body": "span.SectionBody",
    "text": "span.Text.Intro.Justify",
    "subsection": "div.Subsection",
    "paragraph": "div.Paragraph",
    "number": "span.Number",
    "history": "div.History",
    "history_text": "span.HistoryText",
    "note": "div.Note",
    "note_title": "span.NoteTitle",
}

PARAGRAPH_INDENT = "    "

_TOKENS = {
    "title": re.compile(r"\bTitle\s+([\w.\-]+)", re.IGNORECASE),
    "chapter": re.compile(r"\bChapter\s+([\w.\-]+)", re.IGNORECASE),
    "section": re.compile(r"\bSection\s+([\w.\-]+)", re.IGNORECASE),
}


def parse_breadcrumb(text: str) -> dict[str, Optional[str]]:
    """Pull Title/Chapter/Section identifiers out of a ``A > B > C`` trail.

    Missing tokens map to None.
    """
    found: dict[str, Optional[str]] = {name: None for name in _TOKENS}
    for crumb in text.split(">"):
        for name, pattern in _TOKENS.items():
            if found[name] is None:
                match = pattern.search(crumb)
                if match:
                    found[name] = match.group(1).rstrip(".")
    return found


class NestedParser(BaseParser):
    """Emit title, chapter and section records for a leaf section page.

    Non-leaf pages (breadcrumb lacking any of Title/Chapter/Section) yield
    nothing; link discovery on them is unaffected.
    """

    def __init__(self, base_url: str, selectors: dict | None = None):
        super().__init__(base_url)
        self.selectors = {**DEFAULT_SELECTORS, **(selectors or {})}

    def extract(self, soup: BeautifulSoup, page_url: str, **context) -> Iterator[Record]:
        crumbs = soup.select_one(self.selectors["breadcrumbs"])
        if crumbs is None:
            return
        ids = parse_breadcrumb(crumbs.get_text(" "))
        title_number, chapter_number, section_number = ids["title"], ids["chapter"], ids["section"]
        if not (title_number and chapter_number and section_number):
            self.logger.debug("Non-leaf page %s: breadcrumb ids %s", page_url, ids)
            return

        title_url = self._crumb_url(crumbs, "Title", page_url) or page_url
        chapter_url = self._crumb_url(crumbs, "Chapter", page_url) or page_url

        yield Title(
            title_number=title_number,
            display_name=f"Title {title_number}",
            description=self._optional_text(soup, "title_toc"),
            url=title_url,
        )
        yield Chapter(
            title_number=title_number,
            chapter_number=chapter_number,
            display_name=f"Chapter {chapter_number}",
            url=chapter_url,
        )
        yield Section(
            title_number=title_number,
            chapter_number=chapter_number,
            section_number=section_number,
            display_name=f"Section {section_number}",
            section_title=self._optional_text(soup, "catchline"),
            url=page_url,
            content=self.extract_legislative_text(soup),
        )

    def extract_legislative_text(self, soup: BeautifulSoup) -> str:
        """Render the section body as numbered, indented lines.

        Returns the placeholder when the page carries no section text.
        """
        lines = list(self._body_lines(soup))
        if not lines:
            return CONTENT_NOT_AVAILABLE
        catchline = self._optional_text(soup, "catchline")
        if catchline:
            lines.insert(0, catchline)
        return "\n".join(lines)

    def _body_lines(self, soup: BeautifulSoup) -> Iterator[str]:
        sel = self.selectors

        body = soup.select_one(sel["body"])
        if body is None:
            self.logger.debug("No section body (%s) found", sel["body"])
        else:
            intro = body.select_one(f":scope > {sel['text']}")
            if intro is not None:
                text = normalize_whitespace(intro.get_text(" "))
                if text:
                    yield text

            for subsection in body.select(sel["subsection"]):
                yield from self._subsection_lines(subsection)

        history = soup.select_one(sel["history"])
        if history is not None:
            text = " ".join(
                normalize_whitespace(h.get_text(" ")) for h in history.select(sel["history_text"])
            ).strip()
            if text:
                yield f"History.—{text}"

        for note in soup.select(sel["note"]):
            title = self._first_text(note, sel["note_title"])
            text = self._first_text(note, sel["text"])
            if title and text:
                yield f"{title}.—{text}"

    def _subsection_lines(self, subsection: Tag) -> Iterator[str]:
        sel = self.selectors
        number = self._first_text(subsection, f":scope > {sel['number']}")
        text = self._first_text(subsection, f":scope > {sel['text']}")
        if not (number and text):
            return
        yield f"{number} {text}"
        for paragraph in subsection.select(sel["paragraph"]):
            p_number = self._first_text(paragraph, f":scope > {sel['number']}")
            p_text = self._first_text(paragraph, f":scope > {sel['text']}")
            if p_number and p_text:
                yield f"{PARAGRAPH_INDENT}{p_number} {p_text}"

    def _crumb_url(self, crumbs: Tag, label: str, page_url: str) -> Optional[str]:
        for a in crumbs.find_all("a", href=True):
            if label in a.get_text():
                return ensure_absolute_url(a["href"], page_url)
        return None

    def _optional_text(self, soup: BeautifulSoup, name: str) -> str:
        try:
            return select_text(soup, self.selectors[name])
        except ParseError:
            return ""

    @staticmethod
    def _first_text(root: Tag, selector: str) -> str:
        try:
            return select_text(root, selector)
        except ParseError:
            return ""
