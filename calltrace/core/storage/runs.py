"""Run storage operations."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from calltrace.core.exceptions import RunNotFoundError
from calltrace.core.models import Marker, RunRecord


class RunStorage:
    """Storage operations for exploration runs."""

    def __init__(self, get_connection: Callable[[], sqlite3.Connection]) -> None:
        self._get_connection = get_connection

    def insert(
        self,
        program: str,
        class_name: str,
        method_name: str,
        resolution: str,
        root_marker: Marker,
        node_count: int,
    ) -> int:
        """Insert a run and return its ID. The caller owns the transaction."""
        conn = self._get_connection()
        cursor = conn.execute(
            """
            INSERT INTO runs (program, class_name, method_name, resolution, root_marker, node_count)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (program, class_name, method_name, resolution, root_marker.value, node_count),
        )
        return cursor.lastrowid  # type: ignore[return-value]

    def get(self, run_id: int) -> RunRecord:
        """Get a run by its ID."""
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,))
        row = cursor.fetchone()
        if row is None:
            raise RunNotFoundError(f"Run with id {run_id} not found")
        return RunRecord.from_row(row)

    def list(self, limit: int | None = None) -> list[RunRecord]:
        """Saved runs, newest first."""
        conn = self._get_connection()
        if limit is not None:
            cursor = conn.execute("SELECT * FROM runs ORDER BY id DESC LIMIT ?", (limit,))
        else:
            cursor = conn.execute("SELECT * FROM runs ORDER BY id DESC")
        return [RunRecord.from_row(row) for row in cursor.fetchall()]

    def find(self, class_name: str, method_name: str | None = None) -> list[RunRecord]:
        """Runs for an entry class (and method), newest first."""
        conn = self._get_connection()
        if method_name is not None:
            cursor = conn.execute(
                "SELECT * FROM runs WHERE class_name = ? AND method_name = ? ORDER BY id DESC",
                (class_name, method_name),
            )
        else:
            cursor = conn.execute(
                "SELECT * FROM runs WHERE class_name = ? ORDER BY id DESC",
                (class_name,),
            )
        return [RunRecord.from_row(row) for row in cursor.fetchall()]

    def delete(self, run_id: int) -> int:
        """Delete a run row. Returns count deleted. The caller owns the transaction."""
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM runs WHERE id = ?", (run_id,))
        return cursor.rowcount

    def clear(self) -> None:
        """Delete all runs."""
        conn = self._get_connection()
        conn.execute("DELETE FROM runs")
        conn.commit()
