"""Shared fixtures for footprint tests."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from footprint.runtime.service import FootprintService
from footprint.runtime.sqlite_store import SQLiteStore
from footprint.runtime.store import MemoryCollection, MemoryStore
from footprint.specs.model import FieldSpec, ModelSpec

# =============================================================================
# Counting Store
# =============================================================================


class CountingCollection(MemoryCollection):
    """Memory collection recording every store call made against it."""

    def __init__(self, name: str, calls: Counter[str]):
        super().__init__(name)
        self.calls = calls

    def _count(self, method: str) -> None:
        self.calls[f"{self.name}.{method}"] += 1

    async def insert_one(self, document: Mapping[str, Any]) -> dict[str, Any]:
        self._count("insert_one")
        return await super().insert_one(document)

    async def insert_many(self, documents: Any) -> list[dict[str, Any]]:
        self._count("insert_many")
        return await super().insert_many(documents)

    async def find_one(self, filter: Mapping[str, Any], **kwargs: Any) -> Any:
        self._count("find_one")
        return await super().find_one(filter, **kwargs)

    async def find_many(self, filter: Mapping[str, Any], **kwargs: Any) -> Any:
        self._count("find_many")
        return await super().find_many(filter, **kwargs)

    async def update_many(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        self._count("update_many")
        return await super().update_many(filter, update)

    async def delete_one(self, filter: Mapping[str, Any]) -> int:
        self._count("delete_one")
        return await super().delete_one(filter)

    async def delete_many(self, filter: Mapping[str, Any]) -> int:
        self._count("delete_many")
        return await super().delete_many(filter)


class CountingStore(MemoryStore):
    """Memory store whose collections count calls in a shared Counter."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: Counter[str] = Counter()

    def collection(self, name: str) -> CountingCollection:
        if name not in self._collections:
            self._collections[name] = CountingCollection(name, self.calls)
        return self._collections[name]  # type: ignore[return-value]

    def total_calls(self, collection: str | None = None) -> int:
        if collection is None:
            return sum(self.calls.values())
        return sum(n for key, n in self.calls.items() if key.startswith(f"{collection}."))


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def models() -> list[ModelSpec]:
    """Parent/Tag/Profile models plus an unrelated Note model."""
    return [
        ModelSpec(
            name="Parent",
            fields=[
                FieldSpec(name="name", scalar_type="str"),
                FieldSpec(name="tags", kind="ref", ref_model="Tag", cardinality="array"),
                FieldSpec(name="profile", kind="ref", ref_model="Profile"),
                FieldSpec(name="ghost", kind="ref", ref_model="Unregistered"),
            ],
        ),
        ModelSpec(
            name="Tag",
            fields=[
                FieldSpec(name="value", scalar_type="int"),
                FieldSpec(name="status", scalar_type="str"),
            ],
        ),
        ModelSpec(name="Profile", collection="profiles"),
        ModelSpec(name="Note"),
    ]


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Any:
    """Each bundled document store."""
    if request.param == "memory":
        return MemoryStore()
    return SQLiteStore(tmp_path / "footprint.db")


@pytest.fixture
def service(store: Any, models: list[ModelSpec]) -> FootprintService:
    """Service over each bundled store."""
    return FootprintService(store, models=models)


@pytest.fixture
def counting_store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def counting_service(counting_store: CountingStore, models: list[ModelSpec]) -> FootprintService:
    """Service over a memory store that records store calls."""
    return FootprintService(counting_store, models=models)
