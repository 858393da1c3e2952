"""Unit test fixtures: an in-memory RecordStore."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from asset_ingest.store import StoreError


class FakeStore:
    """In-memory RecordStore.

    fail_inserts: 1-based insert call numbers that raise StoreError.
    confirm_limit: cap on rows returned per insert (simulates partial confirms).
    fail_tables: tables whose select raises StoreError.
    """

    def __init__(
        self,
        tables: dict[str, list[dict[str, Any]]] | None = None,
        fail_inserts: set[int] | None = None,
        confirm_limit: int | None = None,
        fail_tables: set[str] | None = None,
    ) -> None:
        self.tables = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.fail_inserts = fail_inserts or set()
        self.confirm_limit = confirm_limit
        self.fail_tables = fail_tables or set()
        self.select_calls: list[str] = []
        self.insert_calls: list[tuple[str, list[dict[str, Any]]]] = []
        self._lock = threading.Lock()
        self._next_id = 1

    def select(self, table, columns, filters=(), order_by=None):
        with self._lock:
            self.select_calls.append(table)
        if table in self.fail_tables:
            raise StoreError(f'relation "{table}" does not exist')
        rows = self.tables.get(table, [])
        for f in filters:
            rows = [r for r in rows if r.get(f.column) == f.value]
        if order_by:
            rows = sorted(rows, key=lambda r: r[order_by])
        return [{c: r.get(c) for c in columns} for r in rows]

    def insert(self, table, records, returning=("id",)):
        self.insert_calls.append((table, [dict(r) for r in records]))
        if len(self.insert_calls) in self.fail_inserts:
            raise StoreError("duplicate key value violates unique constraint")
        confirmed = list(records)
        if self.confirm_limit is not None:
            confirmed = confirmed[: self.confirm_limit]
        out = []
        for record in confirmed:
            row = dict(record, id=self._next_id)
            self._next_id += 1
            self.tables.setdefault(table, []).append(row)
            out.append({c: row.get(c) for c in returning})
        return out


REFERENCE_TABLES = {
    "sites": [{"id": "MM"}, {"id": "ATL"}, {"id": "LDN"}],
    "asset_types": [
        {"id": 1, "name": "Laptop"},
        {"id": 2, "name": "Desktop"},
        {"id": 3, "name": "Network Switch"},
    ],
    "manufacturers": [
        {"id": 10, "name": "Dell"},
        {"id": 11, "name": "HP"},
        {"id": 12, "name": "Lenovo"},
    ],
    "asset_categories": [
        {"id": 100, "name": "Hardware"},
        {"id": 101, "name": "Networking"},
    ],
}


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore(REFERENCE_TABLES)


@pytest.fixture
def make_store():
    def _make(**kwargs: Any) -> FakeStore:
        return FakeStore(REFERENCE_TABLES, **kwargs)
    return _make
