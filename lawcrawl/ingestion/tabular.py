"""Tabular extraction: rows of a listing map column positions to record fields.

Used for flat index pages such as Pennsylvania's consolidated statutes table
and the Massachusetts General Laws part/title/chapter/section lists.
"""

from __future__ import annotations

import re
from typing import Iterator

from bs4 import BeautifulSoup, Tag

from ..errors import ParseError
from ..normalization.text_cleaner import clean_number, normalize_whitespace
from ..settings import TierConfig
from ..utils.urls import ensure_absolute_url
from .base import CONTENT_NOT_AVAILABLE, BaseParser, Chapter, Part, Record, Section, Title

DEFAULT_DISPLAY_NAMES = {
    "title": "Title {number}",
    "chapter": "Chapter {number}",
    "section": "Section {number}",
}


class TabularParser(BaseParser):
    """Turn each row matched by ``tier.rows`` into one record of ``tier.kind``.

    Field specs come from the tier config. A string is a CSS selector relative to
    the row (text of the first match). A mapping may hold:

    - ``select``: selector relative to the row; omitted means the row itself
    - ``attr``: read this attribute instead of the text
    - ``index``: use the nth match instead of the first
    - ``strip_prefix``: drop a leading label such as ``"Chapter"``
    - ``pattern``: regex applied to the value; group 1 is kept

    Rows missing a required field are skipped. Rows yielding an already-seen
    key replace the earlier one, so every key is emitted once.
    """

    def __init__(self, base_url: str, tier: TierConfig):
        super().__init__(base_url)
        self.tier = tier

    def extract(self, soup: BeautifulSoup, page_url: str, **context) -> Iterator[Record]:
        records: dict[tuple, Record] = {}
        for row in soup.select(self.tier.rows):
            values = self._read_row(row, page_url)
            if any(not values.get(name) for name in self.tier.required):
                self.logger.debug("Skipping row without %s on %s", self.tier.required, page_url)
                continue
            record = self._build(values, page_url, context)
            records[record.key] = record
        yield from records.values()

    def _read_row(self, row: Tag, page_url: str) -> dict[str, str]:
        values = {}
        for name, spec in self.tier.fields.items():
            try:
                value = read_field(row, spec)
            except ParseError:
                value = ""
            if name == "url":
                value = ensure_absolute_url(value, page_url) or ""
            values[name] = value
        return values

    def _build(self, values: dict[str, str], page_url: str, context: dict) -> Record:
        kind = self.tier.kind
        number = values.get("number", "")
        template_vars = {**context, **values, "base_url": self.base_url}

        url = values.get("url", "")
        if self.tier.url_template:
            url = self.tier.url_template.format(**template_vars)
        url = url or page_url

        if kind == "part":
            return Part(number=number, title=values.get("title", ""), url=url)

        template = self.tier.display_name or DEFAULT_DISPLAY_NAMES[kind]
        display_name = values.get("display_name") or template.format(**template_vars)
        part_number = context.get("part_number")

        if kind == "title":
            return Title(
                title_number=number,
                display_name=display_name,
                description=values.get("description", ""),
                url=url,
                part_number=part_number,
            )
        if kind == "chapter":
            return Chapter(
                title_number=context["title_number"],
                chapter_number=number,
                display_name=display_name,
                url=url,
                part_number=part_number,
            )
        return Section(
            title_number=context["title_number"],
            chapter_number=context["chapter_number"],
            section_number=number,
            display_name=display_name,
            section_title=values.get("section_title", ""),
            url=url,
            content=CONTENT_NOT_AVAILABLE,
            part_number=part_number,
        )


def read_field(row: Tag, spec: str | dict) -> str:
    """Read one field from a row according to its spec."""
    if isinstance(spec, str):
        spec = {"select": spec}

    selector = spec.get("select")
    if selector:
        matches = row.select(selector)
        index = spec.get("index", 0)
        if len(matches) <= index:
            raise ParseError(f"No element #{index} for selector {selector!r}")
        element = matches[index]
    else:
        element = row

    attr = spec.get("attr")
    if attr:
        value = element.get(attr) or ""
        if isinstance(value, list):
            value = " ".join(value)
    else:
        value = normalize_whitespace(element.get_text(" "))

    pattern = spec.get("pattern")
    if pattern:
        match = re.search(pattern, value, flags=re.IGNORECASE)
        value = match.group(1) if match else ""

    prefix = spec.get("strip_prefix")
    if prefix:
        value = clean_number(value, prefix)
    return value.strip()
