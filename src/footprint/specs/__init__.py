"""
Specification types for footprint models.
"""

from footprint.specs.model import Cardinality, FieldSpec, ModelSpec, field_from_shorthand

__all__ = [
    "Cardinality",
    "FieldSpec",
    "ModelSpec",
    "field_from_shorthand",
]
