"""Call tree node storage operations."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable

from calltrace.core.models import CallTreeNode, Marker, MethodSignature


class NodeStorage:
    """Storage operations for the nodes of saved call trees.

    Nodes are written in pre-order, so ascending ids put every parent before
    its children and siblings in call order.
    """

    def __init__(self, get_connection: Callable[[], sqlite3.Connection]) -> None:
        self._get_connection = get_connection

    def insert_tree(self, run_id: int, root: CallTreeNode) -> int:
        """Insert every node of a tree. The caller owns the transaction."""
        conn = self._get_connection()
        count = 0
        pending: list[tuple[CallTreeNode, int | None, int]] = [(root, None, 0)]
        while pending:
            node, parent_id, position = pending.pop()
            signature = node.signature
            cursor = conn.execute(
                """
                INSERT INTO nodes (run_id, parent_id, position, marker, owner, name,
                                   parameters, text, line, candidates)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    run_id,
                    parent_id,
                    position,
                    node.marker.value,
                    signature.owner if signature else None,
                    signature.name if signature else None,
                    json.dumps(list(signature.parameter_types)) if signature else None,
                    node.text,
                    node.line,
                    json.dumps([_signature_to_list(c) for c in node.candidates])
                    if node.candidates
                    else None,
                ),
            )
            count += 1
            node_id = cursor.lastrowid
            for index in range(len(node.children) - 1, -1, -1):
                pending.append((node.children[index], node_id, index))
        return count

    def load_tree(self, run_id: int) -> CallTreeNode | None:
        """Rebuild the tree saved for a run, or None if it has no nodes."""
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM nodes WHERE run_id = ? ORDER BY id", (run_id,))

        root: CallTreeNode | None = None
        by_id: dict[int, CallTreeNode] = {}
        for row in cursor.fetchall():
            node = _row_to_node(row)
            by_id[row["id"]] = node
            if row["parent_id"] is None:
                root = node
            else:
                by_id[row["parent_id"]].children.append(node)
        return root

    def delete_for_run(self, run_id: int) -> int:
        """Delete all nodes of a run. The caller owns the transaction."""
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM nodes WHERE run_id = ?", (run_id,))
        return cursor.rowcount

    def clear(self) -> None:
        """Delete all nodes."""
        conn = self._get_connection()
        conn.execute("DELETE FROM nodes")
        conn.commit()


def _signature_to_list(signature: MethodSignature) -> list[object]:
    return [signature.owner, signature.name, list(signature.parameter_types)]


def _row_to_node(row: sqlite3.Row) -> CallTreeNode:
    signature = None
    if row["owner"] is not None:
        signature = MethodSignature(
            owner=row["owner"],
            name=row["name"],
            parameter_types=tuple(json.loads(row["parameters"] or "[]")),
        )
    candidates = tuple(
        MethodSignature(owner=owner, name=name, parameter_types=tuple(params))
        for owner, name, params in json.loads(row["candidates"] or "[]")
    )
    return CallTreeNode(
        signature=signature,
        marker=Marker(row["marker"]),
        text=row["text"],
        line=row["line"],
        candidates=candidates,
    )
