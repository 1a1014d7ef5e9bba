"""Flat-file sink: one pretty-printed JSON mapping per hierarchy tier."""

from __future__ import annotations

import copy
import json
from datetime import datetime, timezone
from pathlib import Path

from ..errors import PersistenceError
from .base import BaseSink, composite_key

TIER_FILES = {
    "part": "parts.json",
    "title": "titles.json",
    "chapter": "chapters.json",
    "section": "sections.json",
}
STATE_FILE = "state.json"


class JsonFileSink(BaseSink):
    """Keep records in memory and write ``<tier>s.json`` files on flush.

    Each file maps a composite key (``title_18/chapter_5``) to its record.
    A failed file write is logged and retried on the next flush; it never
    raises.

    Args:
        output_dir: Directory receiving the JSON files.
        state: State slug.
        flush_every: Flush automatically after this many upserts (0 disables).
    """

    def __init__(self, output_dir: Path, state: str, flush_every: int = 50):
        super().__init__(state)
        self.output_dir = Path(output_dir)
        self.flush_every = flush_every
        self._tables: dict[str, dict[str, dict]] = {kind: {} for kind in TIER_FILES}
        self._state: dict | None = None
        self._dirty: set[str] = set()
        self._writes = 0

    async def upsert(self, kind: str, key: tuple, fields: dict, replace: bool = False) -> None:
        if kind not in self._tables:
            raise PersistenceError(kind, key, f"unknown entity kind {kind!r}")
        table = self._tables[kind]
        record_key = composite_key(kind, key)

        current = table.get(record_key)
        updated = dict(fields) if replace or current is None else {**current, **fields}
        if updated != current:
            table[record_key] = updated
            self._dirty.add(kind)

        self._writes += 1
        if self.flush_every and self._writes % self.flush_every == 0:
            await self.flush()

    async def initialize_state(self, name: str, abbreviation: str) -> None:
        self._state = {
            "name": name,
            "abbreviation": abbreviation,
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
        self._dirty.add("state")

    def records(self, kind: str) -> dict[str, dict]:
        """Snapshot of every stored record of ``kind``."""
        return copy.deepcopy(self._tables[kind])

    async def flush(self) -> None:
        for kind in sorted(self._dirty):
            if kind == "state":
                path, data = self.output_dir / STATE_FILE, self._state
            else:
                path, data = self.output_dir / TIER_FILES[kind], self._tables[kind]
            try:
                self.output_dir.mkdir(parents=True, exist_ok=True)
                path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            except OSError as e:
                self.logger.error("Error saving data to %s: %s", path, e)
                continue
            self._dirty.discard(kind)
            self.logger.info("Data successfully saved to %s (%d records)", path, len(data))
