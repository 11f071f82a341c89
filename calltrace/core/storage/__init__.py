"""
Storage layer: SQLite persistence for exploration runs.

Components:
    - RunRepository: Main facade that coordinates all storage
    - RunStorage: CRUD operations for runs table
    - NodeStorage: Write and rebuild the call tree of a run

Database Schema:
    runs: id, program, class_name, method_name, resolution, root_marker, node_count, created_at
    nodes: id, run_id, parent_id, position, marker, owner, name, parameters, text, line, candidates

The database is stored at .calltrace/runs.db relative to the working directory.
"""

from calltrace.core.storage.nodes import NodeStorage
from calltrace.core.storage.repository import RunRepository, get_default_db_path
from calltrace.core.storage.runs import RunStorage

__all__ = [
    "RunRepository",
    "RunStorage",
    "NodeStorage",
    "get_default_db_path",
]
