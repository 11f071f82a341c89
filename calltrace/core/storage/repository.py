"""Repository that coordinates run and node storage."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from calltrace.core.config import ResolutionMode
from calltrace.core.exceptions import RunNotFoundError, StorageError
from calltrace.core.models import CallTreeNode
from calltrace.core.storage.nodes import NodeStorage
from calltrace.core.storage.runs import RunStorage

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    program TEXT NOT NULL,
    class_name TEXT NOT NULL,
    method_name TEXT NOT NULL,
    resolution TEXT NOT NULL DEFAULT 'name',
    root_marker TEXT NOT NULL,
    node_count INTEGER NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS nodes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id INTEGER NOT NULL,
    parent_id INTEGER,
    position INTEGER NOT NULL,
    marker TEXT NOT NULL,
    owner TEXT,
    name TEXT,
    parameters TEXT,
    text TEXT,
    line INTEGER DEFAULT 0,
    candidates TEXT,
    FOREIGN KEY (run_id) REFERENCES runs(id)
);

CREATE INDEX IF NOT EXISTS idx_nodes_run ON nodes(run_id);
CREATE INDEX IF NOT EXISTS idx_runs_entry ON runs(class_name, method_name);
"""


class RunRepository:
    """Facade that coordinates runs and nodes storage."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

        self.runs = RunStorage(self._get_connection)
        self.nodes = NodeStorage(self._get_connection)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a database connection."""
        if self._conn is None:
            try:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self._db_path)
                conn.row_factory = sqlite3.Row
                conn.executescript(_SCHEMA)
            except (OSError, sqlite3.Error) as e:
                raise StorageError(f"Cannot open run database {self._db_path}: {e}") from e
            self._conn = conn
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> RunRepository:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def save_run(
        self,
        tree: CallTreeNode,
        program: str,
        class_name: str,
        method_name: str,
        resolution: ResolutionMode = ResolutionMode.NAME,
    ) -> int:
        """Save a call tree and return the new run ID.

        The run row and all of its nodes are written in one transaction.

        Raises:
            StorageError: The run could not be written.
        """
        conn = self._get_connection()
        try:
            with conn:
                run_id = self.runs.insert(
                    program=program,
                    class_name=class_name,
                    method_name=method_name,
                    resolution=resolution.value,
                    root_marker=tree.marker,
                    node_count=len(tree),
                )
                self.nodes.insert_tree(run_id, tree)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot save run for {class_name}.{method_name}: {e}") from e

        logger.debug(
            "Saved run %d for %s.%s (%d nodes)", run_id, class_name, method_name, len(tree)
        )
        return run_id

    def load_tree(self, run_id: int) -> CallTreeNode:
        """Load the call tree of a saved run.

        Raises:
            RunNotFoundError: No run has this ID.
        """
        self.runs.get(run_id)
        tree = self.nodes.load_tree(run_id)
        if tree is None:
            raise RunNotFoundError(f"Run {run_id} has no saved nodes")
        return tree

    def delete_run(self, run_id: int) -> bool:
        """Delete a run and its nodes in one transaction.

        Returns True if the run existed.

        Raises:
            StorageError: The run could not be deleted.
        """
        conn = self._get_connection()
        try:
            with conn:
                self.nodes.delete_for_run(run_id)
                deleted = self.runs.delete(run_id)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot delete run {run_id}: {e}") from e
        return deleted > 0

    def get_stats(self) -> dict[str, int | datetime | None]:
        """Get run database statistics."""
        conn = self._get_connection()

        run_count = conn.execute("SELECT COUNT(*) FROM runs").fetchone()[0]
        node_count = conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]

        last_run_row = conn.execute("SELECT MAX(created_at) FROM runs").fetchone()[0]
        last_run = datetime.fromisoformat(last_run_row) if last_run_row else None

        return {
            "runs": run_count,
            "nodes": node_count,
            "last_run": last_run,
        }

    def clear(self) -> None:
        """Clear all data from the database."""
        self.nodes.clear()
        self.runs.clear()


def get_default_db_path(project_root: Path) -> Path:
    """Get the default run database path for a working directory."""
    return project_root / ".calltrace" / "runs.db"
