import asyncio
import json
import logging

import pytest

from lawcrawl.errors import PersistenceError
from lawcrawl.ingestion import Chapter, Section, Title
from lawcrawl.storage import JsonFileSink, doc_id, key_path
from lawcrawl.storage.base import composite_key

TITLE = Title(title_number="IV", display_name="Title IV", description="CRIMES", url="https://fl.test/t4")
CHAPTER = Chapter(title_number="IV", chapter_number="5", display_name="Chapter 5", url="https://fl.test/c5")
SECTION = Section(
    title_number="IV",
    chapter_number="5",
    section_number="12",
    display_name="Section 12",
    url="https://fl.test/s12",
    content="(1) Definitions.",
)


def test_doc_id_and_composite_keys():
    assert doc_id("title", "IV") == "title_iv"
    assert doc_id("section", "775.082") == "section_775_082"
    assert composite_key("section", SECTION.key) == "title_iv/chapter_5/section_12"
    assert key_path("title", ("I", "II")) == [("part", "I"), ("title", "II")]
    with pytest.raises(PersistenceError):
        key_path("chapter", ("only-one",))
    with pytest.raises(PersistenceError):
        key_path("section", ("12",))
    with pytest.raises(PersistenceError):
        key_path("part", ())
    assert key_path("section", ("I", "IV", "5", "12"))[0] == ("part", "I")


def test_upsert_is_idempotent(tmp_path):
    sink = JsonFileSink(tmp_path, "florida", flush_every=0)

    async def write():
        await sink.upsert_hierarchy([TITLE, CHAPTER, SECTION])

    asyncio.run(write())
    snapshot = {kind: sink.records(kind) for kind in ("title", "chapter", "section")}
    asyncio.run(write())

    assert {kind: sink.records(kind) for kind in snapshot} == snapshot
    assert list(snapshot["section"]) == ["title_iv/chapter_5/section_12"]


def test_merge_keeps_unspecified_fields_and_section_write_replaces(tmp_path):
    sink = JsonFileSink(tmp_path, "florida", flush_every=0)

    async def write():
        await sink.upsert("title", ("IV",), {"title_number": "IV", "description": "CRIMES"})
        await sink.upsert("title", ("IV",), {"title_number": "IV", "url": "https://fl.test/t4"})
        await sink.upsert("section", SECTION.key, {"content": "old", "extra": "stale"}, replace=True)
        await sink.upsert("section", SECTION.key, {"content": "new"}, replace=True)

    asyncio.run(write())

    assert sink.records("title")["title_iv"] == {
        "title_number": "IV",
        "description": "CRIMES",
        "url": "https://fl.test/t4",
    }
    assert sink.records("section")["title_iv/chapter_5/section_12"] == {"content": "new"}


def test_flush_writes_pretty_json_per_tier(tmp_path):
    sink = JsonFileSink(tmp_path / "out", "florida")

    async def write():
        await sink.initialize_state("Florida", "FL")
        await sink.upsert_hierarchy([TITLE, CHAPTER, SECTION])
        await sink.close()

    asyncio.run(write())

    sections = json.loads((tmp_path / "out" / "sections.json").read_text(encoding="utf-8"))
    assert sections["title_iv/chapter_5/section_12"]["content"] == "(1) Definitions."
    assert json.loads((tmp_path / "out" / "state.json").read_text())["abbreviation"] == "FL"
    assert "\n  " in (tmp_path / "out" / "titles.json").read_text()
    assert not (tmp_path / "out" / "parts.json").exists()


def test_flush_every_writes_incrementally(tmp_path):
    sink = JsonFileSink(tmp_path, "florida", flush_every=3)
    asyncio.run(sink.upsert_hierarchy([TITLE, CHAPTER, SECTION]))
    assert (tmp_path / "sections.json").exists()


def test_failed_file_write_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    sink = JsonFileSink(blocker / "out", "florida", flush_every=0)

    with caplog.at_level(logging.ERROR):
        asyncio.run(sink.upsert_record(TITLE))
        asyncio.run(sink.flush())

    assert "Error saving data" in caplog.text
    assert sink.records("title")


def test_failed_parent_write_skips_children(tmp_path):
    class ChapterlessSink(JsonFileSink):
        async def upsert(self, kind, key, fields, replace=False):
            if kind == "chapter":
                raise PersistenceError(kind, key, "store unavailable")
            await super().upsert(kind, key, fields, replace)

    sink = ChapterlessSink(tmp_path, "florida", flush_every=0)
    with pytest.raises(PersistenceError):
        asyncio.run(sink.upsert_hierarchy([TITLE, CHAPTER, SECTION]))

    assert sink.records("title")
    assert sink.records("section") == {}
