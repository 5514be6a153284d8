"""
Model registry - resolves model names and reference fields.

Models are registered up front from ModelSpec; each registration binds the
model to its store collection and builds a lookup table of its fields, so
reference discovery at call time is a dictionary lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from footprint.errors import ModelNotFoundError
from footprint.runtime.store import DocumentCollection, DocumentStore
from footprint.specs.model import FieldSpec, ModelSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelHandle:
    """A registered model: its spec, its collection and its field table."""

    name: str
    spec: ModelSpec
    collection: DocumentCollection
    fields: Mapping[str, FieldSpec] = field(default_factory=dict)

    @property
    def references(self) -> dict[str, FieldSpec]:
        return {name: f for name, f in self.fields.items() if f.is_reference}


class ModelRegistry:
    """
    Registry of models backed by a document store.

    Acts as both the model resolver (name -> handle) and the reference
    resolver (handle + field -> reference definition).
    """

    def __init__(self, store: DocumentStore, models: Iterable[ModelSpec] = ()):
        self.store = store
        self._handles: dict[str, ModelHandle] = {}
        for spec in models:
            self.register(spec)

    def register(self, spec: ModelSpec) -> ModelHandle:
        """Register a model, replacing any earlier model of the same name."""
        if spec.name in self._handles:
            logger.info("Replacing registered model %s", spec.name)
        handle = ModelHandle(
            name=spec.name,
            spec=spec,
            collection=self.store.collection(spec.collection_name),
            fields=MappingProxyType({f.name: f for f in spec.fields}),
        )
        self._handles[spec.name] = handle
        logger.debug(
            "Registered model %s (collection=%s, references=%s)",
            spec.name,
            spec.collection_name,
            sorted(handle.references),
        )
        return handle

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._handles

    @property
    def models(self) -> list[str]:
        return list(self._handles)

    def get(self, model_name: str) -> ModelHandle | None:
        return self._handles.get(model_name)

    def resolve(self, model_name: str) -> ModelHandle:
        """
        Resolve a model name to its handle.

        Raises:
            ModelNotFoundError: If no model of that name is registered
        """
        handle = self._handles.get(model_name) if isinstance(model_name, str) else None
        if handle is None:
            logger.warning("No model found: %s", model_name)
            raise ModelNotFoundError(str(model_name))
        return handle

    # =========================================================================
    # Reference resolution
    # =========================================================================

    def reference_definition(self, handle: object, field_name: object) -> FieldSpec | None:
        """Get the definition of a field, or None if the field or handle is invalid."""
        if not isinstance(handle, ModelHandle) or not isinstance(field_name, str):
            return None
        return handle.fields.get(field_name)

    def reference_model_name(self, handle: object, field_name: object) -> str | None:
        """Get the model a field refers to, or None if it is not a reference."""
        definition = self.reference_definition(handle, field_name)
        if definition is None or not definition.is_reference:
            return None
        return definition.ref_model or None
