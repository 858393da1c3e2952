"""Integration test fixtures.

Applies the asset schema migrations against an ephemeral PostgreSQL database
provided by pytest-postgresql, then seeds a small set of reference rows.
"""

from __future__ import annotations

from pathlib import Path

import psycopg
import pytest
from pytest_postgresql import factories

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent.parent.parent
MIGRATIONS = [
    PROJECT_ROOT / "migrations" / "0001_reference_tables.sql",
    PROJECT_ROOT / "migrations" / "0002_assets.sql",
]

# ---------------------------------------------------------------------------
# pytest-postgresql process fixture
# ---------------------------------------------------------------------------

postgresql_proc = factories.postgresql_proc()
postgresql = factories.postgresql("postgresql_proc")


# ---------------------------------------------------------------------------
# Schema fixture
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db_conn(postgresql):
    """Return (connection, dsn) with the schema applied and reference data seeded.

    Function scope gives every test a fresh database.
    """
    dsn = (
        f"host={postgresql.info.host} "
        f"port={postgresql.info.port} "
        f"dbname={postgresql.info.dbname} "
        f"user={postgresql.info.user} "
        f"password={postgresql.info.password or ''}"
    )
    conn = psycopg.connect(dsn, autocommit=True)
    try:
        for migration in MIGRATIONS:
            conn.execute(migration.read_text(encoding="utf-8"))
        _seed_reference_data(conn)
        yield conn, dsn
    finally:
        conn.close()


def _seed_reference_data(conn: psycopg.Connection) -> None:
    conn.execute(
        "INSERT INTO sites (id, name, city, country) VALUES "
        "('MM', 'Main Office', 'Manchester', 'UK'), "
        "('ATL', 'Atlanta Hub', 'Atlanta', 'US')"
    )
    conn.execute(
        "INSERT INTO asset_categories (name) VALUES ('Hardware'), ('Networking')"
    )
    conn.execute(
        "INSERT INTO asset_types (name, category_id) VALUES "
        "('Laptop', 1), ('Desktop', 1), ('Network Switch', 2)"
    )
    conn.execute(
        "INSERT INTO manufacturers (name) VALUES ('Dell'), ('HP'), ('Lenovo')"
    )
