"""Firestore sink: ``states/{state}/[parts/{part}/]titles/{title}/chapters/{chapter}/sections/{section}``."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.oauth2 import service_account

from ..errors import PersistenceError
from ..ingestion.base import Record, Section
from ..settings import StoreSettings
from .base import BaseSink, doc_id, key_path

COLLECTIONS = {
    "part": "parts",
    "title": "titles",
    "chapter": "chapters",
    "section": "sections",
}


class FirestoreSink(BaseSink):
    """Write records into nested Firestore collections with ``set(..., merge=...)``.

    :meth:`upsert_hierarchy` commits a title, chapter and section in one write
    batch, so a section never lands without its parents.

    Args:
        state: State slug; the root document id under ``states``.
        client: A ``google.cloud.firestore.AsyncClient``.
    """

    def __init__(self, state: str, client):
        super().__init__(state)
        self.client = client

    @classmethod
    def from_settings(cls, state: str, settings: StoreSettings) -> "FirestoreSink":
        credentials = service_account.Credentials.from_service_account_file(settings.credentials_path)
        client_kwargs = {"project": settings.project_id, "credentials": credentials}
        if settings.database:
            client_kwargs["database"] = settings.database
        return cls(state, firestore.AsyncClient(**client_kwargs))

    def state_ref(self):
        return self.client.collection("states").document(self.state)

    def document_ref(self, kind: str, key: tuple):
        ref = self.state_ref()
        for level, value in key_path(kind, key):
            ref = ref.collection(COLLECTIONS[level]).document(doc_id(level, value))
        return ref

    async def upsert(self, kind: str, key: tuple, fields: dict, replace: bool = False) -> None:
        ref = self.document_ref(kind, key)
        try:
            await ref.set(fields, merge=not replace)
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(kind, key, e) from e

    async def upsert_hierarchy(self, records: Iterable[Record]) -> None:
        records = list(records)
        if not records:
            return
        batch = self.client.batch()
        for record in records:
            replace = isinstance(record, Section)
            batch.set(self.document_ref(record.kind, record.key), record.fields(), merge=not replace)
        try:
            await batch.commit()
        except google_exceptions.GoogleAPIError as e:
            leaf = records[-1]
            raise PersistenceError(leaf.kind, leaf.key, e) from e
        self.logger.debug("Committed %d documents for %s", len(records), records[-1].key)

    async def initialize_state(self, name: str, abbreviation: str) -> None:
        try:
            await self.state_ref().set(
                {
                    "name": name,
                    "abbreviation": abbreviation,
                    "lastUpdated": datetime.now(timezone.utc).isoformat(),
                },
                merge=True,
            )
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError("state", (self.state,), e) from e
        self.logger.info("%s state document initialized", name)
