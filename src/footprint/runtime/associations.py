"""
Association engine - operations on records linked from a parent record.

A parent model declares reference fields holding either one child id
(single cardinality) or a list of child ids (array cardinality). Every
operation loads the parent, resolves the reference, runs the child operation
through the CRUD engine and, when membership changes, updates the parent's
reference field.

Parent reference fields are written with single update operators ($push,
$set, $pullAll) rather than a full-document save, so concurrent association
calls against the same parent do not overwrite each other's changes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from footprint.errors import (
    ChildCreationFailedError,
    ParentIdMissingError,
    ParentRecordNotFoundError,
    ReferenceNotFoundError,
)
from footprint.runtime.criteria import (
    ByFilter,
    ById,
    QueryOptions,
    by_ids,
    criteria_fields,
)
from footprint.runtime.crud import CrudEngine, Options, as_list
from footprint.runtime.logging import log_with_context
from footprint.runtime.matching import PRIMARY_KEY, Record
from footprint.runtime.registry import ModelHandle
from footprint.specs.model import FieldSpec

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    # 0 and False are valid ids
    return value is None or value == "" or value == []


@dataclass(frozen=True)
class _Reference:
    parent: ModelHandle
    field: FieldSpec
    child_model: str

    @property
    def name(self) -> str:
        return self.field.name

    def ids(self, value: Any) -> list[Any]:
        return list(value) if isinstance(value, list) else [value]

    def filter(self, value: Any) -> dict[str, Any]:
        if self.field.is_array or isinstance(value, list):
            return by_ids(self.ids(value))
        return {PRIMARY_KEY: value}


class AssociationEngine:
    """
    Create, find, update and destroy records through a parent's reference field.
    """

    def __init__(self, crud: CrudEngine):
        self.crud = crud
        self.registry = crud.registry

    def _reference(self, parent_model: str, parent_id: Any, child_field: str) -> _Reference:
        handle = self.registry.resolve(parent_model)
        if _is_empty(parent_id):
            log_with_context(logger, logging.WARNING, "No parent id provided", model=parent_model)
            raise ParentIdMissingError(parent_model)

        definition = self.registry.reference_definition(handle, child_field)
        child_model = self.registry.reference_model_name(handle, child_field)
        if definition is None or child_model is None or child_model not in self.registry:
            log_with_context(
                logger, logging.WARNING, "Reference not found", model=parent_model, field=child_field
            )
            raise ReferenceNotFoundError(parent_model, child_field)

        return _Reference(parent=handle, field=definition, child_model=child_model)

    async def _load_parent(self, ref: _Reference, parent_id: Any) -> Record:
        parent = await self.crud.find(ref.parent.name, parent_id, QueryOptions(find_one=True))
        if not isinstance(parent, Mapping):
            log_with_context(
                logger,
                logging.WARNING,
                "Parent record not found",
                model=ref.parent.name,
                parent_id=parent_id,
            )
            raise ParentRecordNotFoundError(ref.parent.name, parent_id)
        return dict(parent)

    async def _save_reference(self, ref: _Reference, parent: Record, update: dict[str, Any]) -> None:
        await ref.parent.collection.update_many({PRIMARY_KEY: parent[PRIMARY_KEY]}, update)

    def _child_options(self, options: Options) -> QueryOptions:
        resolved = self.crud.resolve_options(options)
        return QueryOptions(default_limit=resolved.default_limit, find_one=False)

    async def create_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        values: Mapping[str, Any],
        options: Options = None,
    ) -> Record:
        """
        Create a child record and link it from the parent.

        Array references get the new id appended; single references are
        overwritten with it.

        Returns:
            The created child record
        """
        ref = self._reference(parent_model, parent_id, child_field)
        if not isinstance(values, Mapping):
            raise TypeError("create_association takes a single mapping of values")
        parent = await self._load_parent(ref, parent_id)

        child = await self.crud.create(ref.child_model, values, options)
        if not isinstance(child, Mapping) or _is_empty(child.get(PRIMARY_KEY)):
            raise ChildCreationFailedError(ref.child_model)

        child_id = child[PRIMARY_KEY]
        op = "$push" if ref.field.is_array else "$set"
        await self._save_reference(ref, parent, {op: {ref.name: child_id}})
        logger.debug("Linked %s %r to %s.%s", ref.child_model, child_id, parent_model, ref.name)
        return dict(child)

    async def find_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        criteria: Any = None,
        options: Options = None,
    ) -> Record | list[Record] | None:
        """
        Find child records linked from the parent, narrowed by criteria.

        Caller criteria override the reference filter on key collision.
        """
        ref = self._reference(parent_model, parent_id, child_field)
        parent = await self._load_parent(ref, parent_id)

        value = parent.get(ref.name)
        if _is_empty(value):
            return []

        query = {**ref.filter(value), **criteria_fields(criteria)}
        return await self.crud.find(ref.child_model, ByFilter(query), self._child_options(options))

    async def update_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        criteria: Any,
        values: Mapping[str, Any],
        options: Options = None,
    ) -> list[Record] | None:
        """
        Update child records linked from the parent.

        Only child field values change; the parent's reference is left as is.

        Returns:
            The updated children, or None when the parent links no children
        """
        ref = self._reference(parent_model, parent_id, child_field)
        parent = await self._load_parent(ref, parent_id)

        value = parent.get(ref.name)
        if _is_empty(value):
            return None

        query = {**by_ids(ref.ids(value)), **criteria_fields(criteria)}
        result = await self.crud.update(
            ref.child_model, ByFilter(query), values, self._child_options(options)
        )
        return as_list(result)

    async def destroy_association(
        self,
        parent_model: str,
        parent_id: Any,
        child_field: str,
        criteria: Any = None,
        options: Options = None,
    ) -> list[Any] | Any:
        """
        Destroy child records and unlink them from the parent.

        For array references the children are matched by criteria over the
        whole child model, not only among the parent's own references; the
        matched ids are then removed from the parent's list. For single
        references criteria are ignored and the referenced child is removed.

        Returns:
            The removed ids (array) or the cleared id (single)
        """
        ref = self._reference(parent_model, parent_id, child_field)
        parent = await self._load_parent(ref, parent_id)

        if ref.field.is_array:
            found = await self.crud.find(ref.child_model, criteria, self._child_options(options))
            ids = [record[PRIMARY_KEY] for record in as_list(found)]
            if not ids:
                return []
            await self.crud.destroy(ref.child_model, ByFilter(by_ids(ids)))
            await self._save_reference(ref, parent, {"$pullAll": {ref.name: ids}})
            logger.debug("Unlinked %d %s from %s.%s", len(ids), ref.child_model, parent_model, ref.name)
            return ids

        value = parent.get(ref.name)
        if _is_empty(value):
            return None
        await self.crud.destroy(ref.child_model, ById(value))
        await self._save_reference(ref, parent, {"$set": {ref.name: None}})
        logger.debug("Unlinked %s %r from %s.%s", ref.child_model, value, parent_model, ref.name)
        return value
