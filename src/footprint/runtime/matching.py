"""
Document filter matching and update operators.

Shared by the bundled document stores so that every backend agrees on what a
filter selects and what an update document does.

Filters are mappings of field name to either a plain value (equality) or an
operator mapping:

    {"status": "active"}
    {"priority": {"$gte": 5}}
    {"_id": {"$in": [1, 2, 3]}}

Updates are either a plain mapping of fields (applied as ``$set``) or an
operator document:

    {"$set": {"status": "done"}}
    {"$push": {"tags": 40}}
    {"$pullAll": {"tags": [10, 20]}}
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping
from enum import StrEnum
from typing import Any

PRIMARY_KEY = "_id"

Record = dict[str, Any]

_MISSING = object()


class FilterOperator(StrEnum):
    """Supported filter operators."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    EXISTS = "$exists"


class UpdateOperator(StrEnum):
    """Supported update operators."""

    SET = "$set"
    UNSET = "$unset"
    PUSH = "$push"
    PULL_ALL = "$pullAll"


def is_operator_mapping(value: Any) -> bool:
    """Check if a filter value is an operator mapping like ``{"$gt": 1}``."""
    return (
        isinstance(value, Mapping)
        and len(value) > 0
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def _comparable(value: Any, operand: Any) -> bool:
    """Ordering applies to number against number and text against text only."""
    numbers = (bool, int, float)
    if isinstance(operand, numbers):
        return isinstance(value, numbers)
    if isinstance(operand, str):
        return isinstance(value, str)
    return False


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, operand: Any) -> bool:
        if value is _MISSING or not _comparable(value, operand):
            return False
        return op(value, operand)

    return check


def _in(value: Any, operand: Any) -> bool:
    candidate = None if value is _MISSING else value
    return any(candidate == item for item in _as_list(operand, FilterOperator.IN))


def _exists(value: Any, operand: Any) -> bool:
    return (value is not _MISSING) == bool(operand)


_OPERATORS: dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.EQ: lambda v, o: (None if v is _MISSING else v) == o,
    FilterOperator.NE: lambda v, o: (None if v is _MISSING else v) != o,
    FilterOperator.GT: _compare(lambda v, o: v > o),
    FilterOperator.GTE: _compare(lambda v, o: v >= o),
    FilterOperator.LT: _compare(lambda v, o: v < o),
    FilterOperator.LTE: _compare(lambda v, o: v <= o),
    FilterOperator.IN: _in,
    FilterOperator.NIN: lambda v, o: not _in(v, o),
    FilterOperator.EXISTS: _exists,
}


def parse_operator(name: str) -> FilterOperator:
    try:
        return FilterOperator(name)
    except ValueError:
        raise ValueError(f"Unsupported filter operator: {name}") from None


def _as_list(operand: Any, op: str) -> list[Any]:
    if isinstance(operand, (str, bytes)) or not isinstance(operand, Iterable):
        raise ValueError(f"{op} expects a list of values, got {operand!r}")
    return list(operand)


def matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    """
    Check whether a document satisfies a filter.

    A missing field compares equal to None, as in most document stores.
    """
    for key, condition in filter.items():
        value = document.get(key, _MISSING)
        if is_operator_mapping(condition):
            for name, operand in condition.items():
                if not _OPERATORS[parse_operator(name)](value, operand):
                    return False
        elif (None if value is _MISSING else value) != condition:
            return False
    return True


def project(document: Mapping[str, Any], fields: Iterable[str] | None) -> Record:
    """Copy a document, keeping only the given fields (and the primary key)."""
    if fields is None:
        return copy.deepcopy(dict(document))
    wanted = set(fields) | {PRIMARY_KEY}
    return {k: copy.deepcopy(v) for k, v in document.items() if k in wanted}


# =============================================================================
# Update Operators
# =============================================================================


def normalize_update(update: Mapping[str, Any]) -> dict[UpdateOperator, dict[str, Any]]:
    """
    Turn an update into an operator document.

    Plain field mappings become ``$set``. Mixing operators and plain fields is
    rejected.
    """
    if not update:
        return {}
    keys = [k for k in update if isinstance(k, str) and k.startswith("$")]
    if not keys:
        return {UpdateOperator.SET: dict(update)}
    if len(keys) != len(update):
        raise ValueError("Update cannot mix operators and plain fields")

    result: dict[UpdateOperator, dict[str, Any]] = {}
    for key in keys:
        try:
            op = UpdateOperator(key)
        except ValueError:
            raise ValueError(f"Unsupported update operator: {key}") from None
        fields = update[key]
        if not isinstance(fields, Mapping):
            raise ValueError(f"{key} expects a mapping of fields")
        result[op] = dict(fields)
    return result


def apply_update(document: Mapping[str, Any], update: Mapping[str, Any]) -> Record:
    """
    Apply an update to a copy of a document and return the copy.

    Raises:
        ValueError: On unsupported operators, type mismatches, or attempts to
            change the primary key
    """
    result = copy.deepcopy(dict(document))
    for op, fields in normalize_update(update).items():
        for name, value in fields.items():
            if name == PRIMARY_KEY and (op != UpdateOperator.SET or value != result.get(name)):
                raise ValueError("The _id field cannot be modified")

            if op == UpdateOperator.SET:
                result[name] = copy.deepcopy(value)
            elif op == UpdateOperator.UNSET:
                result.pop(name, None)
            elif op == UpdateOperator.PUSH:
                current = result.get(name)
                if current is None:
                    current = []
                elif not isinstance(current, list):
                    raise ValueError(f"Cannot $push to non-array field '{name}'")
                result[name] = [*current, copy.deepcopy(value)]
            elif op == UpdateOperator.PULL_ALL:
                current = result.get(name)
                if current is None:
                    continue
                if not isinstance(current, list):
                    raise ValueError(f"Cannot $pullAll from non-array field '{name}'")
                removed = _as_list(value, op)
                result[name] = [item for item in current if item not in removed]
    return result
