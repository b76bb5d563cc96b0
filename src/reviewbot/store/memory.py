"""MemoryStore - process-local store for development and tests."""

import copy
import uuid
from typing import Any

from reviewbot.store.base import DocumentStore


class MemoryStore(DocumentStore):
    """Keeps every collection in a dictionary keyed by document id.

    Documents are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        doc = copy.deepcopy(document)
        doc.pop("id", None)
        self._collection(collection)[doc_id] = doc
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return None
        return {**copy.deepcopy(doc), "id": doc_id}

    def patch(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise KeyError(f"{collection}/{doc_id} does not exist")
        update = copy.deepcopy(fields)
        update.pop("id", None)
        docs[doc_id].update(update)

    def replace(self, collection: str, doc_id: str, document: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise KeyError(f"{collection}/{doc_id} does not exist")
        doc = copy.deepcopy(document)
        doc.pop("id", None)
        docs[doc_id] = doc

    def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)

    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        return [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._collection(collection).items()
            if doc.get(field) == value
        ]

    def count(self, collection: str) -> int:
        """Number of documents in a collection."""
        return len(self._collection(collection))
