"""
SQLite document store - persistent backend for footprint.

Each collection is a table holding one JSON document per row. Filters are
compiled to SQL over ``json_each`` so selection, limits and ordering happen
in SQLite; projection and update operators are applied in Python with the
same helpers the in-memory store uses.

Documents must be JSON serializable; anything else raises ``TypeError`` on
write rather than being stored in a different form.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import time
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from footprint.runtime.matching import (
    PRIMARY_KEY,
    FilterOperator,
    Record,
    apply_update,
    is_operator_mapping,
    parse_operator,
    project,
)
from footprint.runtime.store import ConstraintViolationError, encode_key, prepare_document

logger = logging.getLogger(__name__)

# Valid SQL identifier pattern (alphanumeric and underscore, not starting with digit)
_VALID_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_identifier(name: str, context: str = "identifier") -> str:
    """
    Validate that a string is safe to use as a table name.

    Raises:
        ValueError: If the name contains invalid characters
    """
    if not name:
        raise ValueError(f"SQL {context} cannot be empty")
    if not _VALID_IDENTIFIER_PATTERN.match(name):
        raise ValueError(
            f"Invalid SQL {context} '{name}': must contain only letters, digits, "
            "and underscores, and cannot start with a digit"
        )
    return name


def quote_identifier(name: str) -> str:
    return f'"{validate_identifier(name)}"'


def _encode_document(document: Mapping[str, Any]) -> str:
    # Sorted keys make stored objects compare equal regardless of key order
    return json.dumps(document, sort_keys=True)


# =============================================================================
# Filter Compilation
# =============================================================================

# Top-level fields are looked up by key through json_each, so field names
# are bound parameters and need not be SQL identifiers.
_FIELD_VALUE = '(SELECT f."value" FROM json_each("doc") AS f WHERE f."key" = ?)'
_FIELD_TYPE = '(SELECT f."type" FROM json_each("doc") AS f WHERE f."key" = ?)'

_CONTAINER_TYPES = "('array', 'object')"
_NUMERIC_TYPES = "('integer', 'real', 'true', 'false')"
_TEXT_TYPES = "('text')"

_COMPARISONS = {
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
}


def _scalar_param(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _eq_sql(field: str, operand: Any) -> tuple[str, list[Any]]:
    """Equality with the in-memory semantics: containers only equal containers."""
    if operand is None:
        return f"{_FIELD_VALUE} IS NULL", [field]
    if isinstance(operand, (list, dict)):
        return (
            f"({_FIELD_TYPE} IN {_CONTAINER_TYPES} AND json({_FIELD_VALUE}) = json(?))",
            [field, field, json.dumps(operand, sort_keys=True)],
        )
    return (
        f"({_FIELD_TYPE} NOT IN {_CONTAINER_TYPES} AND {_FIELD_VALUE} = ?)",
        [field, field, _scalar_param(operand)],
    )


def _in_sql(field: str, operand: Any, op: FilterOperator) -> tuple[str, list[Any]]:
    if isinstance(operand, (str, bytes)) or not isinstance(operand, Iterable):
        raise ValueError(f"{op} expects a list of values, got {operand!r}")
    clauses: list[str] = []
    params: list[Any] = []
    for value in operand:
        sql, extra = _eq_sql(field, value)
        clauses.append(sql)
        params.extend(extra)
    if not clauses:
        return "0", []
    return f"COALESCE(({' OR '.join(clauses)}), 0)", params


def _comparison_sql(field: str, op: FilterOperator, operand: Any) -> tuple[str, list[Any]]:
    # Only numbers compare with numbers and text with text
    if isinstance(operand, (bool, int, float)):
        types = _NUMERIC_TYPES
    elif isinstance(operand, str):
        types = _TEXT_TYPES
    else:
        return "0", []
    return (
        f"({_FIELD_TYPE} IN {types} AND {_FIELD_VALUE} {_COMPARISONS[op]} ?)",
        [field, field, _scalar_param(operand)],
    )


def _condition_sql(field: str, op: FilterOperator, operand: Any) -> tuple[str, list[Any]]:
    if op == FilterOperator.EQ:
        return _eq_sql(field, operand)
    if op == FilterOperator.NE:
        if operand is None:
            return f"{_FIELD_VALUE} IS NOT NULL", [field]
        sql, params = _eq_sql(field, operand)
        return f"NOT COALESCE({sql}, 0)", params
    if op in _COMPARISONS:
        return _comparison_sql(field, op, operand)
    if op == FilterOperator.IN:
        return _in_sql(field, operand, op)
    if op == FilterOperator.NIN:
        sql, params = _in_sql(field, operand, op)
        return f"NOT {sql}", params
    # $exists distinguishes a JSON null (type 'null') from a missing key
    presence = "IS NOT NULL" if operand else "IS NULL"
    return f"{_FIELD_TYPE} {presence}", [field]


def compile_filter(filter: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """
    Compile a document filter to a SQL WHERE clause.

    Returns:
        (where_sql, params); an empty filter yields "1"
    """
    clauses: list[str] = []
    params: list[Any] = []
    for field, condition in filter.items():
        if is_operator_mapping(condition):
            for name, operand in condition.items():
                sql, extra = _condition_sql(field, parse_operator(name), operand)
                clauses.append(sql)
                params.extend(extra)
        else:
            sql, extra = _eq_sql(field, condition)
            clauses.append(sql)
            params.extend(extra)
    if not clauses:
        return "1", []
    return " AND ".join(clauses), params


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """
    Manages the SQLite database file and collection tables.
    """

    def __init__(self, db_path: str | Path = ".footprint/data.db"):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection context manager.

        Commits on success, rolls back on error.

        Yields:
            SQLite connection
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def create_table(self, name: str) -> None:
        """Create a collection table if it doesn't exist."""
        table = quote_identifier(name)
        sql = (
            f"CREATE TABLE IF NOT EXISTS {table} "
            '("key" TEXT PRIMARY KEY, "doc" TEXT NOT NULL)'
        )
        with self.connection() as conn:
            conn.execute(sql)

    def table_exists(self, name: str) -> bool:
        """Check if a table exists."""
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
            )
            return cursor.fetchone() is not None


# =============================================================================
# Collection
# =============================================================================


class SQLiteCollection:
    """
    Document collection stored in one SQLite table.

    Rows are returned in insertion order (rowid).
    """

    def __init__(self, db_manager: DatabaseManager, name: str):
        self.db = db_manager
        self.name = name
        self.table = quote_identifier(name)
        self.db.create_table(name)

    def _insert(self, conn: sqlite3.Connection, document: Record) -> None:
        try:
            conn.execute(
                f'INSERT INTO {self.table} ("key", "doc") VALUES (?, ?)',
                (encode_key(document[PRIMARY_KEY]), _encode_document(document)),
            )
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolationError(
                f"A {self.name} with this _id already exists: {document[PRIMARY_KEY]!r}",
                field=PRIMARY_KEY,
                constraint_type="unique",
            ) from exc

    def _select(
        self,
        conn: sqlite3.Connection,
        filter: Mapping[str, Any],
        limit: int | None = None,
    ) -> list[sqlite3.Row]:
        where, params = compile_filter(filter)
        sql = f'SELECT "key", "doc" FROM {self.table} WHERE {where} ORDER BY rowid'
        if limit is not None:
            sql += " LIMIT ?"
            params = [*params, limit]
        return conn.execute(sql, params).fetchall()

    def _log_query(self, query_type: str, start: float, rows: int) -> None:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "sqlite %s on %s: %d row(s) in %.2fms", query_type, self.name, rows, latency_ms
        )

    async def insert_one(self, document: Mapping[str, Any]) -> Record:
        prepared = prepare_document(document)
        start = time.perf_counter()
        with self.db.connection() as conn:
            self._insert(conn, prepared)
        self._log_query("insert", start, 1)
        return prepared

    async def insert_many(self, documents: Sequence[Mapping[str, Any]]) -> list[Record]:
        prepared = [prepare_document(doc) for doc in documents]
        start = time.perf_counter()
        with self.db.connection() as conn:
            for doc in prepared:
                self._insert(conn, doc)
        self._log_query("insert", start, len(prepared))
        return prepared

    async def find_one(
        self,
        filter: Mapping[str, Any],
        *,
        projection: Iterable[str] | None = None,
    ) -> Record | None:
        found = await self.find_many(filter, limit=1, projection=projection)
        return found[0] if found else None

    async def find_many(
        self,
        filter: Mapping[str, Any],
        *,
        limit: int | None = None,
        projection: Iterable[str] | None = None,
    ) -> list[Record]:
        start = time.perf_counter()
        with self.db.connection() as conn:
            rows = self._select(conn, filter, limit)
        self._log_query("select", start, len(rows))
        return [project(json.loads(row["doc"]), projection) for row in rows]

    async def update_many(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        start = time.perf_counter()
        with self.db.connection() as conn:
            # Hold the write lock across read and write
            conn.execute("BEGIN IMMEDIATE")
            rows = self._select(conn, filter)
            updated = [(row["key"], apply_update(json.loads(row["doc"]), update)) for row in rows]
            conn.executemany(
                f'UPDATE {self.table} SET "doc" = ? WHERE "key" = ?',
                [(_encode_document(doc), key) for key, doc in updated],
            )
        self._log_query("update", start, len(updated))
        return len(updated)

    def _delete(self, filter: Mapping[str, Any], limit: int | None) -> int:
        start = time.perf_counter()
        with self.db.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            keys = [row["key"] for row in self._select(conn, filter, limit)]
            conn.executemany(f'DELETE FROM {self.table} WHERE "key" = ?', [(k,) for k in keys])
        self._log_query("delete", start, len(keys))
        return len(keys)

    async def delete_one(self, filter: Mapping[str, Any]) -> int:
        return self._delete(filter, 1)

    async def delete_many(self, filter: Mapping[str, Any]) -> int:
        return self._delete(filter, None)


class SQLiteStore:
    """Document store backed by a single SQLite database file."""

    def __init__(self, db_path: str | Path = ".footprint/data.db"):
        self.db = DatabaseManager(db_path)
        self._collections: dict[str, SQLiteCollection] = {}

    def collection(self, name: str) -> SQLiteCollection:
        if name not in self._collections:
            self._collections[name] = SQLiteCollection(self.db, name)
        return self._collections[name]
