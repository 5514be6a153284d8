"""
Document store interfaces and the in-memory store.

The footprint service talks to its backing store only through the
``DocumentStore`` / ``DocumentCollection`` protocols defined here, so any
document database client can be plugged in behind a small adapter.
``MemoryStore`` is the bundled implementation used for tests and scripting;
``footprint.runtime.sqlite_store`` provides a persistent one.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

from footprint.runtime.matching import (
    PRIMARY_KEY,
    Record,
    apply_update,
    matches,
    project,
)

# =============================================================================
# Constraint Violation Error
# =============================================================================


class ConstraintViolationError(Exception):
    """Raised when a store constraint (unique primary key) is violated."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        constraint_type: str = "integrity",
    ):
        self.field = field
        self.constraint_type = constraint_type  # "unique" | "integrity"
        super().__init__(message)


def encode_key(key: Any) -> str:
    """
    Storage key for a primary key.

    Keys are compared as JSON text, so 1, 1.0, True and "1" stay distinct.

    Raises:
        TypeError: If the key is not JSON serializable
    """
    return json.dumps(key, sort_keys=True)


def new_id() -> str:
    """Generate a primary key for a document created without one."""
    return str(uuid4())


def prepare_document(document: Mapping[str, Any]) -> Record:
    """Copy a document for insertion, assigning a primary key if missing."""
    if not isinstance(document, Mapping):
        raise TypeError(f"Documents must be mappings, got {type(document).__name__}")
    prepared = copy.deepcopy(dict(document))
    if prepared.get(PRIMARY_KEY) is None:
        prepared[PRIMARY_KEY] = new_id()
    return prepared


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class DocumentCollection(Protocol):
    """A named collection of documents."""

    name: str

    async def insert_one(self, document: Mapping[str, Any]) -> Record: ...

    async def insert_many(self, documents: Sequence[Mapping[str, Any]]) -> list[Record]: ...

    async def find_one(
        self,
        filter: Mapping[str, Any],
        *,
        projection: Iterable[str] | None = None,
    ) -> Record | None: ...

    async def find_many(
        self,
        filter: Mapping[str, Any],
        *,
        limit: int | None = None,
        projection: Iterable[str] | None = None,
    ) -> list[Record]: ...

    async def update_many(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> int: ...

    async def delete_one(self, filter: Mapping[str, Any]) -> int: ...

    async def delete_many(self, filter: Mapping[str, Any]) -> int: ...


@runtime_checkable
class DocumentStore(Protocol):
    """A document store handing out collections by name."""

    def collection(self, name: str) -> DocumentCollection: ...


# =============================================================================
# In-Memory Store
# =============================================================================


class MemoryCollection:
    """
    Collection held in a dict, in insertion order.

    Documents are keyed by ``encode_key`` of their primary key, matching the
    SQLite store. Each method runs to completion without awaiting, so a single
    call is atomic with respect to other coroutines on the same event loop.
    """

    def __init__(self, name: str):
        self.name = name
        self._documents: dict[str, Record] = {}

    def __len__(self) -> int:
        return len(self._documents)

    def _check_unique(self, document: Record, pending: Iterable[str] = ()) -> str:
        key = encode_key(document[PRIMARY_KEY])
        if key in self._documents or key in pending:
            raise ConstraintViolationError(
                f"A {self.name} with this _id already exists: {document[PRIMARY_KEY]!r}",
                field=PRIMARY_KEY,
                constraint_type="unique",
            )
        return key

    async def insert_one(self, document: Mapping[str, Any]) -> Record:
        prepared = prepare_document(document)
        self._documents[self._check_unique(prepared)] = prepared
        return copy.deepcopy(prepared)

    async def insert_many(self, documents: Sequence[Mapping[str, Any]]) -> list[Record]:
        prepared = [prepare_document(doc) for doc in documents]
        keys: list[str] = []
        for doc in prepared:
            keys.append(self._check_unique(doc, keys))
        for key, doc in zip(keys, prepared):
            self._documents[key] = doc
        return copy.deepcopy(prepared)

    def _matching(self, filter: Mapping[str, Any]) -> list[tuple[str, Record]]:
        return [(key, doc) for key, doc in self._documents.items() if matches(doc, filter)]

    async def find_one(
        self,
        filter: Mapping[str, Any],
        *,
        projection: Iterable[str] | None = None,
    ) -> Record | None:
        for doc in self._documents.values():
            if matches(doc, filter):
                return project(doc, projection)
        return None

    async def find_many(
        self,
        filter: Mapping[str, Any],
        *,
        limit: int | None = None,
        projection: Iterable[str] | None = None,
    ) -> list[Record]:
        found = [doc for _, doc in self._matching(filter)]
        if limit is not None:
            found = found[:limit]
        return [project(doc, projection) for doc in found]

    async def update_many(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        # Compute every new document before writing any of them
        updated = [(key, apply_update(doc, update)) for key, doc in self._matching(filter)]
        for key, doc in updated:
            self._documents[key] = doc
        return len(updated)

    async def delete_one(self, filter: Mapping[str, Any]) -> int:
        for key, doc in self._documents.items():
            if matches(doc, filter):
                del self._documents[key]
                return 1
        return 0

    async def delete_many(self, filter: Mapping[str, Any]) -> int:
        keys = [key for key, _ in self._matching(filter)]
        for key in keys:
            del self._documents[key]
        return len(keys)


class MemoryStore:
    """Document store keeping every collection in process memory."""

    def __init__(self) -> None:
        self._collections: dict[str, MemoryCollection] = {}

    def collection(self, name: str) -> MemoryCollection:
        if name not in self._collections:
            self._collections[name] = MemoryCollection(name)
        return self._collections[name]

    @property
    def collection_names(self) -> list[str]:
        return list(self._collections)
