"""
Footprint Runtime

This module provides:
- Model registry (model and reference resolution)
- Criteria normalization (ById / ByFilter, QueryOptions)
- CRUD and association engines
- Document stores (in-memory and SQLite)

Example usage:
    >>> from footprint.runtime import FootprintService, MemoryStore
    >>> from footprint.specs import FieldSpec, ModelSpec
    >>>
    >>> tag = ModelSpec(name="Tag")
    >>> post = ModelSpec(
    ...     name="Post",
    ...     fields=[FieldSpec(name="tags", kind="ref", ref_model="Tag", cardinality="array")],
    ... )
    >>> service = FootprintService(MemoryStore(), models=[tag, post])
"""

from footprint.runtime.associations import AssociationEngine
from footprint.runtime.criteria import (
    ByFilter,
    ById,
    Criteria,
    NormalizedQuery,
    QueryOptions,
    classify,
    normalize,
)
from footprint.runtime.crud import CrudEngine
from footprint.runtime.registry import ModelHandle, ModelRegistry
from footprint.runtime.service import FootprintService
from footprint.runtime.store import (
    ConstraintViolationError,
    DocumentCollection,
    DocumentStore,
    MemoryStore,
)

__all__ = [
    "AssociationEngine",
    "ByFilter",
    "ById",
    "ConstraintViolationError",
    "CrudEngine",
    "Criteria",
    "DocumentCollection",
    "DocumentStore",
    "FootprintService",
    "MemoryStore",
    "ModelHandle",
    "ModelRegistry",
    "NormalizedQuery",
    "QueryOptions",
    "classify",
    "normalize",
]
