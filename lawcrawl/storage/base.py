"""Persistence sink interface: idempotent, merge-style upserts of hierarchy records."""

from __future__ import annotations

import abc
import logging
import re
from typing import Iterable

from ..errors import PersistenceError
from ..ingestion.base import Record, Section

LEVELS = ("part", "title", "chapter", "section")


def doc_id(level: str, value: str) -> str:
    """Stable snake_case identifier, e.g. ``("title", "IV") -> "title_iv"``."""
    return re.sub(r"[^0-9a-z]+", "_", f"{level}_{value}".lower()).strip("_")


def key_path(kind: str, key: tuple) -> list[tuple[str, str]]:
    """Pair each identity-key component with its hierarchy level.

    Keys carry a leading part number only when the site has parts.
    """
    if kind not in LEVELS:
        raise PersistenceError(kind, key, f"unknown entity kind {kind!r}")
    levels = LEVELS[: LEVELS.index(kind) + 1]
    if kind != "part" and len(key) == len(levels) - 1:
        levels = levels[1:]
    if len(key) != len(levels):
        raise PersistenceError(kind, key, "key does not match hierarchy depth")
    return list(zip(levels, (str(k) for k in key)))


def composite_key(kind: str, key: tuple) -> str:
    """``title_18/chapter_5/section_12`` style key."""
    return "/".join(doc_id(level, value) for level, value in key_path(kind, key))


class BaseSink(abc.ABC):
    """Abstract base class for record stores.

    Writes merge into existing records; only a section's final write replaces
    the whole record. Repeating a write leaves the store unchanged.

    Args:
        state: Slug of the state being scraped (e.g. ``"florida"``).
    """

    def __init__(self, state: str):
        self.state = state
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abc.abstractmethod
    async def upsert(self, kind: str, key: tuple, fields: dict, replace: bool = False) -> None:
        """Merge ``fields`` into the record at ``key`` (replace it if ``replace``).

        Raises:
            PersistenceError: If the store rejects the write.
        """

    async def upsert_record(self, record: Record) -> None:
        await self.upsert(record.kind, record.key, record.fields(), replace=isinstance(record, Section))

    async def upsert_hierarchy(self, records: Iterable[Record]) -> None:
        """Write parent-first; a failed parent write stops its children from being written."""
        for record in records:
            await self.upsert_record(record)

    async def initialize_state(self, name: str, abbreviation: str) -> None:
        """Record the state the run is scraping."""

    async def flush(self) -> None:
        """Push buffered writes to durable storage."""

    async def close(self) -> None:
        await self.flush()
