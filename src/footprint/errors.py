"""
Error types for footprint model resolution and associations.
"""

from __future__ import annotations

from typing import Any


class FootprintError(Exception):
    """Base exception for all footprint errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ModelNotFoundError(FootprintError):
    """Raised when a model name does not resolve in the registry."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"No model found: {model_name}")


class ParentIdMissingError(FootprintError):
    """Raised when an association call omits the parent identifier."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"No parent id provided for {model_name}")


class ReferenceNotFoundError(FootprintError):
    """
    Raised when a field is not a resolvable reference on a model.

    Covers fields that do not exist, fields that are not references, and
    references whose target model is not registered.
    """

    def __init__(self, model_name: str, field: str):
        self.model_name = model_name
        self.field = field
        super().__init__(f"No such reference exists: {model_name}.{field}")


class ParentRecordNotFoundError(FootprintError):
    """Raised when the parent id does not resolve to an existing record."""

    def __init__(self, model_name: str, parent_id: Any):
        self.model_name = model_name
        self.parent_id = parent_id
        super().__init__(f"No parent record found: {model_name} {parent_id!r}")


class ChildCreationFailedError(FootprintError):
    """Raised when a created child record carries no usable primary key."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"No _id for created {model_name} record")


class ConfigError(FootprintError):
    """Raised when configuration cannot be read or is invalid."""

    pass
