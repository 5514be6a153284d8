"""
Footprint - model-agnostic data access

Uniform CRUD and association operations over a document store, for any
registered model.

This package provides:
- Specs: ModelSpec / FieldSpec declaring models and their reference fields
- Runtime: FootprintService, the CRUD and association engines, and the
  bundled memory and SQLite document stores
- Config: footprint.toml loading
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("footprint")
except PackageNotFoundError:
    __version__ = "0.0.0"

from footprint.errors import (
    ChildCreationFailedError,
    FootprintError,
    ModelNotFoundError,
    ParentIdMissingError,
    ParentRecordNotFoundError,
    ReferenceNotFoundError,
)
from footprint.runtime.criteria import ByFilter, ById, QueryOptions
from footprint.runtime.service import FootprintService
from footprint.runtime.store import MemoryStore
from footprint.specs.model import Cardinality, FieldSpec, ModelSpec

__all__ = [
    "ByFilter",
    "ById",
    "Cardinality",
    "ChildCreationFailedError",
    "FieldSpec",
    "FootprintError",
    "FootprintService",
    "MemoryStore",
    "ModelNotFoundError",
    "ModelSpec",
    "ParentIdMissingError",
    "ParentRecordNotFoundError",
    "QueryOptions",
    "ReferenceNotFoundError",
]
