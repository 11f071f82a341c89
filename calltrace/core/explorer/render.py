"""Render call trees as indented text, rich trees, or JSON-ready dicts."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from rich.tree import Tree

from calltrace.core.models import CallTreeNode, Marker

INDENT = "  "

RECURSIVE_SUFFIX = "(recursive call, stopping here)"
EXTERNAL_SUFFIX = "(external or unresolved)"
BUDGET_SUFFIX = "(budget exceeded, stopping here)"

_STYLES = {
    Marker.EXPANDED: "cyan",
    Marker.RECURSIVE_CUT: "yellow",
    Marker.EXTERNAL_UNRESOLVED: "dim",
    Marker.NOT_FOUND: "red",
    Marker.BUDGET_EXCEEDED: "magenta",
    Marker.AMBIGUOUS: "yellow",
}


def label(node: CallTreeNode) -> str:
    """Human-readable label for one node."""
    name = node.signature.qualified_name if node.signature else ""

    if node.marker is Marker.EXPANDED:
        return name
    if node.marker is Marker.RECURSIVE_CUT:
        return f"{name} {RECURSIVE_SUFFIX}"
    if node.marker is Marker.EXTERNAL_UNRESOLVED:
        return f"{node.text} {EXTERNAL_SUFFIX}"
    if node.marker is Marker.BUDGET_EXCEEDED:
        return f"{name} {BUDGET_SUFFIX}"
    if node.marker is Marker.AMBIGUOUS:
        candidates = ", ".join(c.display() for c in node.candidates)
        return f"{node.text} (ambiguous: {candidates})"
    return node.text or f"Not found: {name}"


def render(root: CallTreeNode) -> str:
    """Render as one line per node, two spaces of indent per level, pre-order."""
    lines = [f"{INDENT * depth}{label(node)}" for node, depth in root.walk()]
    return "\n".join(lines) + "\n"


def render_rich(root: CallTreeNode) -> Tree:
    """Render as a rich Tree for terminal display."""
    tree = Tree(_styled(root))
    branches: list[tuple[Tree, CallTreeNode]] = [(tree, root)]
    while branches:
        branch, node = branches.pop()
        for child in node.children:
            branches.append((branch.add(_styled(child)), child))
    return tree


def _styled(node: CallTreeNode) -> Text:
    text = Text(label(node), style=_STYLES[node.marker])
    if node.line:
        text.append(f"  line {node.line}", style="dim")
    return text


def tree_to_dict(root: CallTreeNode) -> dict[str, Any]:
    """Convert a call tree to a JSON-serializable dict."""
    result = _node_to_dict(root, 0)
    pending: list[tuple[CallTreeNode, dict[str, Any]]] = [(root, result)]
    while pending:
        node, data = pending.pop()
        for child in node.children:
            child_data = _node_to_dict(child, data["depth"] + 1)
            data["children"].append(child_data)
            pending.append((child, child_data))
    return result


def _node_to_dict(node: CallTreeNode, depth: int) -> dict[str, Any]:
    signature = node.signature
    return {
        "marker": node.marker.value,
        "label": label(node),
        "owner": signature.owner if signature else None,
        "name": signature.name if signature else None,
        "parameters": list(signature.parameter_types) if signature else None,
        "text": node.text,
        "line": node.line,
        "depth": depth,
        "candidates": [c.display() for c in node.candidates],
        "children": [],
    }
