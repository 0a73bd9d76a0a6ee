# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Remote durable store.

The store is relational: one table per collection, every row keyed by an
opaque ``id`` and scoped to a project by ``project_id``. The synchronizer only
needs select-by-project, upsert and delete. :class:`DuckDBRemoteStore` backs
the contract with a DuckDB database (in memory by default, or a file path).
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

import duckdb
import pandas as pd
from typing_extensions import Protocol, runtime_checkable

from .rows import TABLE_COLUMNS, TABLES, Row

logger = logging.getLogger(__name__)


@runtime_checkable
class RemoteStore(Protocol):
    """Row-level relational store scoped by project."""

    def select_by_project(self, table: str, project_id: str) -> List[Row]: ...

    def upsert(self, table: str, row: Row) -> None: ...

    def delete(self, table: str, row_id: str) -> None: ...


class DuckDBRemoteStore:
    """
    DuckDB implementation of :class:`RemoteStore`.

    A single connection is shared; each call works on its own cursor under a
    lock, so the store can be used from the synchronizer's worker thread and
    from callers at the same time.

    Example:
        ```python
        store = DuckDBRemoteStore()  # in memory
        store.upsert("floors", {"id": "f1", "project_id": "p1", ...})
        rows = store.select_by_project("floors", "p1")
        ```
    """

    def __init__(self, database: str = ":memory:"):
        self.database = database
        self.con = duckdb.connect(database=database, read_only=False)
        self._lock = threading.Lock()
        self._create_tables()

    def _create_tables(self) -> None:
        for table, columns in TABLE_COLUMNS.items():
            column_sql = ",\n".join(f"    {name} {kind}" for name, kind in columns.items())
            create_table_sql = f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id VARCHAR PRIMARY KEY,         -- opaque record id
                project_id VARCHAR NOT NULL,    -- owning project
                sort_order INTEGER DEFAULT 0,   -- position within the collection
            {column_sql}
            );
            """
            self.con.execute(create_table_sql)
        logger.debug(f"DuckDB remote tables ready in {self.database!r}")

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in TABLE_COLUMNS:
            raise ValueError(f"Unknown table {table!r}")

    def select_by_project(self, table: str, project_id: str) -> List[Row]:
        self._check_table(table)
        with self._lock:
            cur = self.con.cursor()
            try:
                cur.execute(
                    f"SELECT * FROM {table} WHERE project_id = ? ORDER BY sort_order, id",
                    [project_id],
                )
                columns = [d[0] for d in cur.description]
                return [dict(zip(columns, values)) for values in cur.fetchall()]
            finally:
                cur.close()

    def upsert(self, table: str, row: Row) -> None:
        self._check_table(table)
        columns = ["id", "project_id", "sort_order", *TABLE_COLUMNS[table]]
        unknown = set(row) - set(columns)
        if unknown:
            raise ValueError(f"Unknown columns for {table}: {sorted(unknown)}")
        values = [row.get(c) for c in columns]
        placeholders = ", ".join("?" for _ in columns)
        with self._lock:
            cur = self.con.cursor()
            try:
                cur.execute(
                    f"INSERT OR REPLACE INTO {table} ({', '.join(columns)}) "
                    f"VALUES ({placeholders})",
                    values,
                )
            finally:
                cur.close()

    def delete(self, table: str, row_id: str) -> None:
        self._check_table(table)
        with self._lock:
            cur = self.con.cursor()
            try:
                cur.execute(f"DELETE FROM {table} WHERE id = ?", [row_id])
            finally:
                cur.close()

    def delete_project(self, project_id: str) -> None:
        """Remove every row of a project from every table."""
        with self._lock:
            cur = self.con.cursor()
            try:
                for table in TABLES:
                    cur.execute(f"DELETE FROM {table} WHERE project_id = ?", [project_id])
            finally:
                cur.close()

    def to_dataframe(self, table: str, project_id: Optional[str] = None) -> pd.DataFrame:
        """Materialize a table (optionally one project's rows) as a DataFrame."""
        self._check_table(table)
        query = f"SELECT * FROM {table}"
        params: List[Any] = []
        if project_id is not None:
            query += " WHERE project_id = ?"
            params.append(project_id)
        query += " ORDER BY project_id, sort_order, id"
        with self._lock:
            cur = self.con.cursor()
            try:
                return cur.execute(query, params).df()
            finally:
                cur.close()

    def row_counts(self, project_id: str) -> Dict[str, int]:
        return {table: len(self.select_by_project(table, project_id)) for table in TABLES}

    def close(self) -> None:
        with self._lock:
            self.con.close()
