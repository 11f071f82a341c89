"""Data models for Calltrace."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ClassKind(Enum):
    """Kinds of method owners in a program."""

    CLASS = "class"
    MODULE = "module"


class Marker(Enum):
    """How a call tree node ends."""

    EXPANDED = "expanded"
    RECURSIVE_CUT = "recursive_cut"
    EXTERNAL_UNRESOLVED = "external_unresolved"
    NOT_FOUND = "not_found"
    BUDGET_EXCEEDED = "budget_exceeded"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class MethodSignature:
    """Owning class, method name and parameter types.

    Two signatures are equal when all three parts match, so overloads that
    share a name stay distinct on a visited path.
    """

    owner: str
    name: str
    parameter_types: tuple[str, ...] = ()

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}.{self.name}"

    def display(self) -> str:
        """Format as ``owner.name(T1, T2)``."""
        return f"{self.qualified_name}({', '.join(self.parameter_types)})"

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class InvocationSite:
    """A call found in a method body.

    ``text`` is the call target as formatted by the program model: a fully
    qualified ``owner.method`` when it could be bound, the source text otherwise.
    """

    text: str
    line: int = 0
    arguments: int | None = None


@dataclass(frozen=True)
class MethodDescriptor:
    """A loaded method: its signature and the calls in its body, in order."""

    signature: MethodSignature
    invocations: tuple[InvocationSite, ...] = ()
    file: Path | None = None
    line: int = 0
    min_arity: int = 0
    max_arity: int | None = None
    is_overload: bool = False

    @property
    def name(self) -> str:
        return self.signature.name

    def accepts(self, arguments: int) -> bool:
        """Check whether a call with this many arguments fits the parameter list."""
        if arguments < self.min_arity:
            return False
        return self.max_arity is None or arguments <= self.max_arity


@dataclass(frozen=True)
class ClassDescriptor:
    """A class (or module pseudo-class) and its methods in declaration order."""

    qualified_name: str
    methods: tuple[MethodDescriptor, ...] = ()
    bases: tuple[str, ...] = ()
    kind: ClassKind = ClassKind.CLASS
    file: Path | None = None
    line: int = 0

    @property
    def name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]


class VisitedPath:
    """Immutable ordered set of signatures on one root-to-node path.

    ``extend`` returns a new path; sibling branches never see each other's
    additions.
    """

    __slots__ = ("_order", "_members")

    def __init__(self, signatures: Iterable[MethodSignature] = ()) -> None:
        order: list[MethodSignature] = []
        for signature in signatures:
            if signature not in order:
                order.append(signature)
        self._order: tuple[MethodSignature, ...] = tuple(order)
        self._members: frozenset[MethodSignature] = frozenset(order)

    def extend(self, signature: MethodSignature) -> VisitedPath:
        if signature in self._members:
            return self
        path = VisitedPath.__new__(VisitedPath)
        path._order = self._order + (signature,)
        path._members = self._members | {signature}
        return path

    def __contains__(self, signature: object) -> bool:
        return signature in self._members

    def __iter__(self) -> Iterator[MethodSignature]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        names = " -> ".join(s.qualified_name for s in self._order)
        return f"VisitedPath({names})"


@dataclass
class CallTreeNode:
    """A node in an explored call tree.

    Only EXPANDED nodes own children; every other marker is a leaf.
    """

    signature: MethodSignature | None
    marker: Marker = Marker.EXPANDED
    children: list[CallTreeNode] = field(default_factory=list)
    text: str | None = None
    line: int = 0
    candidates: tuple[MethodSignature, ...] = ()

    @classmethod
    def not_found(cls, message: str, signature: MethodSignature | None = None) -> CallTreeNode:
        return cls(signature=signature, marker=Marker.NOT_FOUND, text=message)

    @classmethod
    def external(cls, site: InvocationSite) -> CallTreeNode:
        return cls(
            signature=None,
            marker=Marker.EXTERNAL_UNRESOLVED,
            text=site.text,
            line=site.line,
        )

    def walk(self) -> Iterator[tuple[CallTreeNode, int]]:
        """Pre-order traversal yielding (node, depth).

        Iterative, so very deep trees do not hit the recursion limit.
        """
        stack: list[tuple[CallTreeNode, int]] = [(self, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            for child in reversed(node.children):
                stack.append((child, depth + 1))

    def __iter__(self) -> Iterator[CallTreeNode]:
        """Pre-order traversal."""
        for node, _ in self.walk():
            yield node

    def __len__(self) -> int:
        """Total nodes in subtree."""
        return sum(1 for _ in self.walk())

    def count(self, marker: Marker | None = None) -> int:
        """Count nodes in the subtree, optionally only those with ``marker``."""
        return sum(1 for node in self if marker is None or node.marker is marker)

    def depth(self) -> int:
        """Depth of the deepest node below this one (0 for a leaf)."""
        return max(depth for _, depth in self.walk())


@dataclass
class RunRecord:
    """A saved exploration run."""

    id: int
    program: str
    class_name: str
    method_name: str
    resolution: str
    root_marker: Marker
    node_count: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> RunRecord:
        """Create a RunRecord from a database row."""
        return cls(
            id=row["id"],
            program=row["program"],
            class_name=row["class_name"],
            method_name=row["method_name"],
            resolution=row["resolution"],
            root_marker=Marker(row["root_marker"]),
            node_count=row["node_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-serializable dict."""
        return {
            "id": self.id,
            "program": self.program,
            "class_name": self.class_name,
            "method_name": self.method_name,
            "resolution": self.resolution,
            "root_marker": self.root_marker.value,
            "node_count": self.node_count,
            "created_at": self.created_at.isoformat(),
        }


class LoadStats:
    """Statistics from loading a program."""

    def __init__(self) -> None:
        self.files: int = 0
        self.classes: int = 0
        self.methods: int = 0
        self.invocations: int = 0
        self.bound: int = 0
        self.skipped: int = 0
        self.errors: list[str] = []

    def __repr__(self) -> str:
        return (
            f"LoadStats(files={self.files}, classes={self.classes}, "
            f"methods={self.methods}, invocations={self.invocations}, "
            f"bound={self.bound}, skipped={self.skipped}, errors={len(self.errors)})"
        )
