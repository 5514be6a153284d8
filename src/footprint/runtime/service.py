"""
Footprint service - the public entry point.

Maps abstract model operations onto a document store: callers name a model
and pass loose criteria; the service resolves the model, normalizes the
criteria and runs the matching store operations. All methods are coroutines.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from footprint.runtime.associations import AssociationEngine
from footprint.runtime.criteria import QueryOptions
from footprint.runtime.crud import CrudEngine, Options
from footprint.runtime.matching import Record
from footprint.runtime.registry import ModelHandle, ModelRegistry
from footprint.runtime.store import DocumentStore, MemoryStore
from footprint.specs.model import ModelSpec

if TYPE_CHECKING:
    from footprint.config import FootprintConfig

logger = logging.getLogger(__name__)


def create_store(config: FootprintConfig) -> DocumentStore:
    """Build the document store selected in configuration."""
    if config.database.backend == "memory":
        return MemoryStore()
    from footprint.runtime.sqlite_store import SQLiteStore

    return SQLiteStore(config.database.path)


class FootprintService:
    """
    Model-agnostic CRUD and association operations over a document store.

    Example:
        service = FootprintService(MemoryStore(), models=[user_spec, role_spec])
        user = await service.create("User", {"name": "ada"})
        await service.create_association("User", user["_id"], "roles", {"name": "admin"})
    """

    def __init__(
        self,
        store: DocumentStore,
        models: Iterable[ModelSpec] = (),
        defaults: QueryOptions | None = None,
    ):
        self.store = store
        self.registry = ModelRegistry(store, models)
        self.crud = CrudEngine(self.registry, defaults)
        self.associations = AssociationEngine(self.crud)

    @classmethod
    def from_config(cls, config: FootprintConfig) -> FootprintService:
        """Create a service from loaded configuration."""
        service = cls(
            create_store(config),
            models=config.models,
            defaults=QueryOptions(default_limit=config.default_limit),
        )
        logger.info(
            "Footprint service ready: %d model(s), backend=%s, default_limit=%s",
            len(config.models),
            config.database.backend,
            config.default_limit,
        )
        return service

    def register(self, spec: ModelSpec) -> ModelHandle:
        return self.registry.register(spec)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(
        self,
        model_name: str,
        values: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        options: Options = None,
    ) -> Record | list[Record]:
        return await self.crud.create(model_name, values, options)

    async def find(
        self, model_name: str, criteria: Any, options: Options = None
    ) -> Record | list[Record] | None:
        return await self.crud.find(model_name, criteria, options)

    async def update(
        self,
        model_name: str,
        criteria: Any,
        values: Mapping[str, Any],
        options: Options = None,
    ) -> Record | list[Record] | None:
        return await self.crud.update(model_name, criteria, values, options)

    async def destroy(
        self, model_name: str, criteria: Any, options: Options = None
    ) -> Record | list[Record] | None:
        return await self.crud.destroy(model_name, criteria, options)

    # =========================================================================
    # Associations
    # =========================================================================

    async def create_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        values: Mapping[str, Any],
        options: Options = None,
    ) -> Record:
        return await self.associations.create_association(
            parent_model, parent_id, child_field, values, options
        )

    async def find_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        criteria: Any = None,
        options: Options = None,
    ) -> Record | list[Record] | None:
        return await self.associations.find_association(
            parent_model, parent_id, child_field, criteria, options
        )

    async def update_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        criteria: Any,
        values: Mapping[str, Any],
        options: Options = None,
    ) -> list[Record] | None:
        return await self.associations.update_association(
            parent_model, parent_id, child_field, criteria, values, options
        )

    async def destroy_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        criteria: Any = None,
        options: Options = None,
    ) -> list[Any] | Any:
        return await self.associations.destroy_association(
            parent_model, parent_id, child_field, criteria, options
        )
