"""asset_ingest.store

Record-store contract consumed by the ingestion pipeline, plus its
PostgreSQL implementation.

The pipeline only ever talks to a RecordStore: a table-oriented store with
select/insert/update/delete and simple equality/range filters.  Any failure
surfaces as StoreError carrying a human-readable message; callers never see
driver exceptions.

Each PostgresRecordStore operation runs on its own short-lived connection
inside a single transaction, so one insert call is atomic and concurrent
reads never share a connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

log = logging.getLogger(__name__)

_OPERATORS = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """Raised when the record store rejects or cannot complete an operation."""


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Filter:
    """A single column predicate: column <op> value."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(
                f"Unsupported filter op {self.op!r}. Must be one of {sorted(_OPERATORS)}."
            )


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

class RecordStore(Protocol):
    def select(
        self,
        table: str,
        columns: Sequence[str],
        filters: Iterable[Filter] = (),
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching rows as dicts, in order_by order when given."""
        ...

    def insert(
        self,
        table: str,
        records: Sequence[dict[str, Any]],
        returning: Sequence[str] = ("id",),
    ) -> list[dict[str, Any]]:
        """Insert all records atomically; return one dict per inserted row."""
        ...

    def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: Iterable[Filter],
    ) -> int:
        ...

    def delete(self, table: str, filters: Iterable[Filter]) -> int:
        ...


# ---------------------------------------------------------------------------
# PostgreSQL implementation
# ---------------------------------------------------------------------------

def _where_clause(filters: Iterable[Filter]) -> tuple[sql.Composable, list[Any]]:
    conditions: list[sql.Composable] = []
    params: list[Any] = []
    for f in filters:
        conditions.append(
            sql.SQL("{} {} %s").format(sql.Identifier(f.column), sql.SQL(_OPERATORS[f.op]))
        )
        params.append(f.value)
    if not conditions:
        return sql.SQL(""), params
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions), params


def _error_message(exc: psycopg.Error) -> str:
    diag = getattr(exc, "diag", None)
    primary = diag.message_primary if diag is not None else None
    return primary or str(exc).strip() or exc.__class__.__name__


class PostgresRecordStore:
    """RecordStore backed by a PostgreSQL database via psycopg 3."""

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn

    def _execute(
        self,
        query: sql.Composable,
        params: Sequence[Any],
        fetch: bool,
    ) -> tuple[list[dict[str, Any]], int]:
        try:
            with psycopg.connect(self._dsn, row_factory=dict_row) as conn:
                with conn.transaction():
                    cur = conn.execute(query, params)
                    rows = cur.fetchall() if fetch else []
                    return rows, cur.rowcount
        except psycopg.Error as exc:
            message = _error_message(exc)
            log.warning("Record store operation failed: %s", message)
            raise StoreError(message) from exc

    def select(
        self,
        table: str,
        columns: Sequence[str],
        filters: Iterable[Filter] = (),
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        where, params = _where_clause(filters)
        query = sql.SQL("SELECT {cols} FROM {table}").format(
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            table=sql.Identifier(table),
        ) + where
        if order_by:
            query += sql.SQL(" ORDER BY {}").format(sql.Identifier(order_by))
        rows, _ = self._execute(query, params, fetch=True)
        return rows

    def insert(
        self,
        table: str,
        records: Sequence[dict[str, Any]],
        returning: Sequence[str] = ("id",),
    ) -> list[dict[str, Any]]:
        if not records:
            return []
        if not returning:
            raise ValueError("insert requires at least one RETURNING column")

        # Column order follows first appearance across all records.
        columns: list[str] = []
        for record in records:
            for key in record:
                if key not in columns:
                    columns.append(key)

        row_sql = sql.SQL("({})").format(
            sql.SQL(", ").join([sql.Placeholder()] * len(columns))
        )
        query = sql.SQL("INSERT INTO {table} ({cols}) VALUES {rows} RETURNING {ret}").format(
            table=sql.Identifier(table),
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            rows=sql.SQL(", ").join([row_sql] * len(records)),
            ret=sql.SQL(", ").join(sql.Identifier(c) for c in returning),
        )
        params = [record.get(c) for record in records for c in columns]
        rows, _ = self._execute(query, params, fetch=True)
        return rows

    def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: Iterable[Filter],
    ) -> int:
        if not values:
            return 0
        where, where_params = _where_clause(filters)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(col)) for col in values
        )
        query = sql.SQL("UPDATE {table} SET ").format(table=sql.Identifier(table))
        query += assignments + where
        _, rowcount = self._execute(query, [*values.values(), *where_params], fetch=False)
        return rowcount

    def delete(self, table: str, filters: Iterable[Filter]) -> int:
        where, params = _where_clause(filters)
        query = sql.SQL("DELETE FROM {table}").format(table=sql.Identifier(table)) + where
        _, rowcount = self._execute(query, params, fetch=False)
        return rowcount
