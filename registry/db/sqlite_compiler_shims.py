"""SQLite compilation shims for PostgreSQL-specific SQLAlchemy features.

Installs a compiler for JSONB when the active dialect is SQLite so that the
declarative metadata (notably ``reconciliation_runs.error_log``) can be created
in test runs that substitute SQLite for PostgreSQL. JSONB operators are not
emulated. SQLite connections also get foreign key enforcement switched on so
``ON DELETE CASCADE`` / ``SET NULL`` behave as they do on PostgreSQL.

Usage: Imported for side-effects by registry.db.models.
"""
from __future__ import annotations

import sqlite3

from sqlalchemy import event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(element, compiler, **kw):  # pragma: no cover - trivial
    # Stored as TEXT-backed JSON on SQLite.
    return "JSON"


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
