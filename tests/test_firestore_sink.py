import asyncio

import pytest
from google.api_core import exceptions as google_exceptions

from lawcrawl.errors import PersistenceError
from lawcrawl.ingestion import Chapter, Part, Section, Title
from lawcrawl.storage.firestore import FirestoreSink


class FakeStore:
    def __init__(self, fail=False):
        self.docs = {}
        self.writes = []
        self.commits = 0
        self.fail = fail

    def apply(self, path, fields, merge):
        if self.fail:
            raise google_exceptions.ServiceUnavailable("firestore down")
        self.writes.append((path, merge))
        self.docs[path] = {**self.docs.get(path, {}), **fields} if merge else dict(fields)


class FakeDocument:
    def __init__(self, store, path):
        self.store = store
        self.path = path

    def collection(self, name):
        return FakeCollection(self.store, f"{self.path}/{name}")

    async def set(self, fields, merge=False):
        self.store.apply(self.path, fields, merge)


class FakeCollection:
    def __init__(self, store, path):
        self.store = store
        self.path = path

    def document(self, doc_id):
        return FakeDocument(self.store, f"{self.path}/{doc_id}")


class FakeBatch:
    def __init__(self, store):
        self.store = store
        self.pending = []

    def set(self, ref, fields, merge=False):
        self.pending.append((ref.path, fields, merge))

    async def commit(self):
        if self.store.fail:
            raise google_exceptions.ServiceUnavailable("firestore down")
        self.store.commits += 1
        for path, fields, merge in self.pending:
            self.store.apply(path, fields, merge)


class FakeClient:
    def __init__(self, store):
        self.store = store

    def collection(self, name):
        return FakeCollection(self.store, name)

    def batch(self):
        return FakeBatch(self.store)


TITLE = Title(title_number="XLVI", display_name="Title XLVI", description="CRIMES", url="https://fl.test/t46")
CHAPTER = Chapter(title_number="XLVI", chapter_number="775", display_name="Chapter 775", url="https://fl.test/c775")
SECTION = Section(
    title_number="XLVI",
    chapter_number="775",
    section_number="082",
    display_name="Section 082",
    url="https://fl.test/s082",
    content="Penalties.",
)


def test_hierarchy_is_one_batch_with_nested_paths():
    store = FakeStore()
    sink = FirestoreSink("florida", FakeClient(store))

    asyncio.run(sink.upsert_hierarchy([TITLE, CHAPTER, SECTION]))

    assert store.commits == 1
    assert store.writes == [
        ("states/florida/titles/title_xlvi", True),
        ("states/florida/titles/title_xlvi/chapters/chapter_775", True),
        ("states/florida/titles/title_xlvi/chapters/chapter_775/sections/section_082", False),
    ]
    section = store.docs["states/florida/titles/title_xlvi/chapters/chapter_775/sections/section_082"]
    assert section["content"] == "Penalties."


def test_parts_nest_titles():
    store = FakeStore()
    sink = FirestoreSink("massachusetts", FakeClient(store))
    title = Title(title_number="I", display_name="Title I", description="", url="u", part_number="I")

    async def write():
        await sink.upsert_record(Part(number="I", title="ADMINISTRATION", url="u"))
        await sink.upsert_record(title)

    asyncio.run(write())

    assert "states/massachusetts/parts/part_i" in store.docs
    assert "states/massachusetts/parts/part_i/titles/title_i" in store.docs


def test_repeated_upsert_leaves_document_unchanged():
    store = FakeStore()
    sink = FirestoreSink("florida", FakeClient(store))

    asyncio.run(sink.upsert_record(TITLE))
    before = dict(store.docs)
    asyncio.run(sink.upsert_record(TITLE))

    assert store.docs == before


def test_store_errors_become_persistence_errors():
    sink = FirestoreSink("florida", FakeClient(FakeStore(fail=True)))

    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(sink.upsert_hierarchy([TITLE, CHAPTER, SECTION]))
    assert excinfo.value.kind == "section"

    with pytest.raises(PersistenceError):
        asyncio.run(sink.upsert_record(TITLE))


def test_initialize_state_merges_state_document():
    store = FakeStore()
    asyncio.run(FirestoreSink("florida", FakeClient(store)).initialize_state("Florida", "FL"))
    assert store.docs["states/florida"]["abbreviation"] == "FL"
    assert store.writes == [("states/florida", True)]
