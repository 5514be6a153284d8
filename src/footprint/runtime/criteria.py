"""
Criteria classification and query normalization.

Callers select records either by primary key (``ById``) or by filter
(``ByFilter``). Loose values coming in from outer layers are classified by
shape: a mapping is a filter, anything else is a primary key.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from footprint.runtime.matching import PRIMARY_KEY


@dataclass(frozen=True)
class ById:
    """Exactly one record, identified by primary key."""

    key: Any


@dataclass(frozen=True)
class ByFilter:
    """Zero or more records matching a filter."""

    fields: Mapping[str, Any] = field(default_factory=dict)


Criteria = ById | ByFilter


def classify(value: Any) -> Criteria:
    """
    Classify a loose criteria value.

    Examples:
        - classify(42) -> ById(42)
        - classify({"status": "open"}) -> ByFilter({"status": "open"})
        - classify(None) -> ById(None)
    """
    if isinstance(value, (ById, ByFilter)):
        return value
    if isinstance(value, Mapping):
        return ByFilter(dict(value))
    return ById(value)


def criteria_fields(value: Any) -> dict[str, Any]:
    """Express criteria as filter fields; None selects everything."""
    if value is None:
        return {}
    criteria = classify(value)
    if isinstance(criteria, ById):
        return {PRIMARY_KEY: criteria.key}
    return dict(criteria.fields)


def by_ids(ids: list[Any]) -> dict[str, Any]:
    """Filter selecting records whose primary key is in ids."""
    return {PRIMARY_KEY: {"$in": list(ids)}}


# =============================================================================
# Options
# =============================================================================


class QueryOptions(BaseModel):
    """
    Per-call query options.

    Attributes:
        default_limit: Cap on how many records a multi-record find/update may match
        find_one: Force single-record semantics for filter criteria
    """

    default_limit: int | None = Field(default=None, ge=1)
    find_one: bool = False

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def resolve_options(
    options: QueryOptions | Mapping[str, Any] | None,
    defaults: QueryOptions | None = None,
) -> QueryOptions:
    """
    Layer caller options over defaults.

    Only options the caller set explicitly override the defaults.
    """
    base = defaults or QueryOptions()
    if options is None:
        return base
    if not isinstance(options, QueryOptions):
        options = QueryOptions.model_validate(dict(options))
    overrides = {name: getattr(options, name) for name in options.model_fields_set}
    return QueryOptions(**{**base.model_dump(), **overrides})


# =============================================================================
# Normalization
# =============================================================================


@dataclass(frozen=True)
class NormalizedQuery:
    """A store query derived from criteria and options."""

    filter: dict[str, Any]
    single: bool
    limit: int | None = None
    key: Any = None
    by_key: bool = False


def normalize(criteria: Any, options: QueryOptions | None = None) -> NormalizedQuery:
    """
    Turn criteria and options into a store query.

    A primary key yields a single-record query on ``_id``. A filter yields a
    multi-record query capped at ``default_limit``, unless ``find_one`` forces
    a single-record query over the filter.
    """
    options = options or QueryOptions()
    criteria = classify(criteria)
    if isinstance(criteria, ById):
        return NormalizedQuery(
            filter={PRIMARY_KEY: criteria.key}, single=True, key=criteria.key, by_key=True
        )
    if options.find_one:
        return NormalizedQuery(filter=dict(criteria.fields), single=True)
    return NormalizedQuery(
        filter=dict(criteria.fields), single=False, limit=options.default_limit
    )
