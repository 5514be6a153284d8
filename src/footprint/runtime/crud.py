"""
CRUD engine - create, find, update and destroy for any registered model.

Criteria shape decides the result shape: a primary key returns one record
(or None), a filter returns a list.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from footprint.runtime.criteria import (
    NormalizedQuery,
    QueryOptions,
    by_ids,
    normalize,
    resolve_options,
)
from footprint.runtime.matching import PRIMARY_KEY, Record
from footprint.runtime.registry import ModelHandle, ModelRegistry

logger = logging.getLogger(__name__)

Options = QueryOptions | Mapping[str, Any] | None


class CrudEngine:
    """
    Generic CRUD operations over the models of a registry.

    Multi-step operations (select ids -> update -> re-read, read -> remove)
    are separate store calls with no isolation between them.
    """

    def __init__(self, registry: ModelRegistry, defaults: QueryOptions | None = None):
        """
        Initialize the engine.

        Args:
            registry: Model registry used to resolve model names
            defaults: Configured option defaults (e.g. default_limit)
        """
        self.registry = registry
        self.defaults = defaults or QueryOptions()

    def resolve_options(self, options: Options) -> QueryOptions:
        return resolve_options(options, self.defaults)

    async def create(
        self,
        model_name: str,
        values: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        options: Options = None,
    ) -> Record | list[Record]:
        """
        Create a record, or several when values is a sequence.

        Returns:
            The created record(s), including their primary keys
        """
        handle = self.registry.resolve(model_name)
        if isinstance(values, Mapping):
            logger.debug("create %s", model_name)
            return await handle.collection.insert_one(values)
        if isinstance(values, Sequence) and not isinstance(values, (str, bytes)):
            logger.debug("create %s x%d", model_name, len(values))
            return await handle.collection.insert_many(list(values))
        raise TypeError("values must be a mapping or a sequence of mappings")

    async def find(
        self,
        model_name: str,
        criteria: Any,
        options: Options = None,
    ) -> Record | list[Record] | None:
        """
        Find records matching criteria.

        Returns:
            A record or None for single-record criteria, otherwise a list
        """
        handle = self.registry.resolve(model_name)
        query = normalize(criteria, self.resolve_options(options))
        logger.debug("find %s %s", model_name, query)
        if query.single:
            return await handle.collection.find_one(query.filter)
        return await handle.collection.find_many(query.filter, limit=query.limit)

    async def _select_ids(self, handle: ModelHandle, query: NormalizedQuery) -> list[Any]:
        if query.single:
            found = await handle.collection.find_one(query.filter, projection=[PRIMARY_KEY])
            return [found[PRIMARY_KEY]] if found else []
        found_many = await handle.collection.find_many(
            query.filter, limit=query.limit, projection=[PRIMARY_KEY]
        )
        return [doc[PRIMARY_KEY] for doc in found_many]

    async def update(
        self,
        model_name: str,
        criteria: Any,
        values: Mapping[str, Any],
        options: Options = None,
    ) -> Record | list[Record] | None:
        """
        Update records matching criteria and return them as updated.

        Filter criteria are first resolved to a fixed set of ids (respecting
        default_limit); the update and the re-read both target exactly that
        set, so records that stop matching the filter are still returned.
        """
        handle = self.registry.resolve(model_name)
        query = normalize(criteria, self.resolve_options(options))
        logger.debug("update %s %s", model_name, query)

        if query.by_key:
            await handle.collection.update_many({PRIMARY_KEY: query.key}, values)
            return await handle.collection.find_one({PRIMARY_KEY: query.key})

        ids = await self._select_ids(handle, query)
        if query.single:
            if not ids:
                return None
            await handle.collection.update_many({PRIMARY_KEY: ids[0]}, values)
            return await handle.collection.find_one({PRIMARY_KEY: ids[0]})

        if not ids:
            return []
        await handle.collection.update_many(by_ids(ids), values)
        return await handle.collection.find_many(by_ids(ids))

    async def destroy(
        self,
        model_name: str,
        criteria: Any,
        options: Options = None,
    ) -> Record | list[Record] | None:
        """
        Destroy records matching criteria.

        Returns:
            The record(s) as they were before removal
        """
        handle = self.registry.resolve(model_name)
        # default_limit only bounds find and update
        resolved = self.resolve_options(options).model_copy(update={"default_limit": None})
        query = normalize(criteria, resolved)
        logger.debug("destroy %s %s", model_name, query)

        if query.single:
            record = await handle.collection.find_one(query.filter)
            if record is None:
                return None
            await handle.collection.delete_one({PRIMARY_KEY: record[PRIMARY_KEY]})
            return record

        records = await handle.collection.find_many(query.filter)
        if records:
            await handle.collection.delete_many(by_ids([r[PRIMARY_KEY] for r in records]))
        return records


def as_list(result: Record | list[Record] | None) -> list[Record]:
    """Normalize a find/destroy result to a list."""
    if result is None:
        return []
    if isinstance(result, list):
        return result
    return [result]
