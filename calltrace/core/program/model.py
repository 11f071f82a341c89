"""In-memory program model."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from calltrace.core.models import ClassDescriptor, InvocationSite, MethodDescriptor

logger = logging.getLogger(__name__)


def split_target(text: str) -> tuple[str, str] | None:
    """Split ``owner.method`` at the last dot, or None if there is no owner."""
    owner, _, name = text.rpartition(".")
    if not owner or not name:
        return None
    return owner, name


class Program:
    """Loaded classes keyed by qualified name.

    Dict lookups are O(1); method lookups scan a class's methods in
    declaration order so the first declared match always wins.
    """

    __slots__ = ("_classes",)

    def __init__(self, classes: Iterable[ClassDescriptor] = ()) -> None:
        self._classes: dict[str, ClassDescriptor] = {}
        for cls in classes:
            self.add_class(cls)

    def add_class(self, cls: ClassDescriptor) -> None:
        """Add a class. A name that is already loaded keeps its first definition."""
        if cls.qualified_name in self._classes:
            logger.warning("Duplicate class %s ignored", cls.qualified_name)
            return
        self._classes[cls.qualified_name] = cls

    def find_class(self, qualified_name: str) -> ClassDescriptor | None:
        """Get a class by qualified name. O(1)."""
        return self._classes.get(qualified_name)

    def find_method_by_name(
        self, cls: ClassDescriptor, method_name: str
    ) -> MethodDescriptor | None:
        """First method declared on ``cls`` with this name. Inherited methods are not searched."""
        for method in cls.methods:
            if method.name == method_name:
                return method
        return None

    def find_methods(self, cls: ClassDescriptor, method_name: str) -> list[MethodDescriptor]:
        """All same-name methods on the first class in lookup order that declares one."""
        for owner in self.lookup_order(cls):
            matches = [m for m in owner.methods if m.name == method_name]
            if matches:
                return matches
        return []

    def resolve_invocation(self, site: InvocationSite) -> MethodDescriptor | None:
        """Bind a call site to a loaded method.

        The owner is looked up first; the method is then searched on the owner
        and its loaded bases, depth-first in declared order.
        """
        target = split_target(site.text)
        if target is None:
            return None
        owner_name, method_name = target

        cls = self.find_class(owner_name)
        if cls is None:
            return None

        for owner in self.lookup_order(cls):
            method = self.find_method_by_name(owner, method_name)
            if method is not None:
                return method
        return None

    def lookup_order(self, cls: ClassDescriptor) -> list[ClassDescriptor]:
        """The class followed by its loaded bases, depth-first, each once."""
        order: list[ClassDescriptor] = []
        seen: set[str] = set()
        stack = [cls]
        while stack:
            current = stack.pop()
            if current.qualified_name in seen:
                continue
            seen.add(current.qualified_name)
            order.append(current)
            for base_name in reversed(current.bases):
                base = self._classes.get(base_name)
                if base is not None and base_name not in seen:
                    stack.append(base)
        return order

    def find(self, query: str) -> list[MethodDescriptor]:
        """Search methods whose qualified name contains ``query``."""
        return sorted(
            (m for m in self.methods() if query in m.signature.qualified_name),
            key=lambda m: m.signature.qualified_name,
        )

    def methods(self) -> Iterator[MethodDescriptor]:
        for cls in self._classes.values():
            yield from cls.methods

    def invocation_counts(self) -> tuple[int, int]:
        """(total call sites, call sites that bind to a loaded method)."""
        total = bound = 0
        for method in self.methods():
            for site in method.invocations:
                total += 1
                if self.resolve_invocation(site) is not None:
                    bound += 1
        return total, bound

    @property
    def classes(self) -> dict[str, ClassDescriptor]:
        return self._classes

    @property
    def num_classes(self) -> int:
        return len(self._classes)

    @property
    def num_methods(self) -> int:
        return sum(len(c.methods) for c in self._classes.values())

    def __repr__(self) -> str:
        return f"Program(classes={self.num_classes}, methods={self.num_methods})"
