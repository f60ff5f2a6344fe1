"""Persistence of the current import status of each terminology."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import psycopg
from psycopg import sql

from .models import ImportState, ImportStatus

_LOGGER = logging.getLogger(__name__)

_COLUMNS = ("terminology", "requested_version", "actual_version", "status", "error_message", "updated_at")


class ImportStatusStore(Protocol):
    """Keyed store holding exactly one status row per terminology name."""

    def get(self, terminology: str) -> Optional[ImportStatus]:
        ...

    def save(self, status: ImportStatus) -> None:
        """Insert or replace the row keyed by ``status.terminology``."""
        ...

    def get_all(self) -> List[ImportStatus]:
        """Return every row ordered by terminology name."""
        ...


class InMemoryImportStatusStore:
    """Process-local status store, used when no database is configured."""

    def __init__(self, statuses: Optional[Sequence[ImportStatus]] = None) -> None:
        self._lock = threading.Lock()
        self._rows: Dict[str, ImportStatus] = {status.terminology: status for status in statuses or ()}

    def get(self, terminology: str) -> Optional[ImportStatus]:
        with self._lock:
            return self._rows.get(terminology)

    def save(self, status: ImportStatus) -> None:
        with self._lock:
            self._rows[status.terminology] = status

    def get_all(self) -> List[ImportStatus]:
        with self._lock:
            return [self._rows[name] for name in sorted(self._rows)]


def _qualified_identifier(schema: str, name: str) -> sql.Composed:
    return sql.SQL(".").join([sql.Identifier(schema), sql.Identifier(name)])


def _row_to_status(row: Sequence[Any]) -> ImportStatus:
    terminology, requested_version, actual_version, status, error_message, updated_at = row
    return ImportStatus(
        terminology=terminology,
        requested_version=requested_version,
        actual_version=actual_version,
        status=ImportState(status),
        error_message=error_message,
        updated_at=updated_at,
    )


class PostgresImportStatusStore:
    """Status store backed by a PostgreSQL table keyed on terminology name."""

    def __init__(
        self,
        dsn: str,
        *,
        schema: str = "syndication",
        table: str = "syndication_import",
        connect: Callable[..., psycopg.Connection] = psycopg.connect,
    ) -> None:
        self._dsn = dsn
        self._schema = schema
        self._table_name = table
        self._table = _qualified_identifier(schema, table)
        self._connect = connect

    def ensure_schema(self) -> None:
        """Create the schema and status table when missing."""

        create_table = sql.SQL(
            """
            CREATE TABLE IF NOT EXISTS {table} (
                terminology TEXT PRIMARY KEY,
                requested_version TEXT,
                actual_version TEXT,
                status TEXT NOT NULL,
                error_message TEXT,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        ).format(table=self._table)
        with self._connect(self._dsn) as conn:
            conn.execute(sql.SQL("CREATE SCHEMA IF NOT EXISTS {schema}").format(schema=sql.Identifier(self._schema)))
            conn.execute(create_table)
            conn.commit()
        _LOGGER.info("Ensured import status table %s.%s", self._schema, self._table_name)

    def _select(self) -> sql.Composed:
        return sql.SQL("SELECT {columns} FROM {table}").format(
            columns=sql.SQL(", ").join(sql.Identifier(column) for column in _COLUMNS),
            table=self._table,
        )

    def get(self, terminology: str) -> Optional[ImportStatus]:
        query = sql.SQL("{select} WHERE terminology = %s").format(select=self._select())
        with self._connect(self._dsn) as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, (terminology,))
                row = cursor.fetchone()
        return None if row is None else _row_to_status(row)

    def save(self, status: ImportStatus) -> None:
        upsert = sql.SQL(
            """
            INSERT INTO {table} (
                terminology,
                requested_version,
                actual_version,
                status,
                error_message,
                updated_at
            ) VALUES (
                %(terminology)s,
                %(requested_version)s,
                %(actual_version)s,
                %(status)s,
                %(error_message)s,
                %(updated_at)s
            )
            ON CONFLICT (terminology)
            DO UPDATE SET
                requested_version = EXCLUDED.requested_version,
                actual_version = EXCLUDED.actual_version,
                status = EXCLUDED.status,
                error_message = EXCLUDED.error_message,
                updated_at = EXCLUDED.updated_at
            """
        ).format(table=self._table)
        payload = {
            "terminology": status.terminology,
            "requested_version": status.requested_version,
            "actual_version": status.actual_version,
            "status": status.status.value,
            "error_message": status.error_message,
            "updated_at": status.updated_at,
        }
        with self._connect(self._dsn) as conn:
            with conn.cursor() as cursor:
                cursor.execute(upsert, payload)
            conn.commit()

    def get_all(self) -> List[ImportStatus]:
        query = sql.SQL("{select} ORDER BY terminology").format(select=self._select())
        with self._connect(self._dsn) as conn:
            with conn.cursor() as cursor:
                cursor.execute(query)
                rows = cursor.fetchall()
        return [_row_to_status(row) for row in rows]


__all__ = ["ImportStatusStore", "InMemoryImportStatusStore", "PostgresImportStatusStore"]
