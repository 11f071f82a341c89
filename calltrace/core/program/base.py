"""Protocol for program models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from calltrace.core.models import ClassDescriptor, InvocationSite, MethodDescriptor


class ProgramModel(Protocol):
    """Read-only class and method lookup over a loaded program."""

    def find_class(self, qualified_name: str) -> ClassDescriptor | None:
        """Get a class by qualified name, or None if it is not loaded."""
        ...

    def find_method_by_name(
        self, cls: ClassDescriptor, method_name: str
    ) -> MethodDescriptor | None:
        """Get the first method declared on ``cls`` with this name."""
        ...

    def find_methods(self, cls: ClassDescriptor, method_name: str) -> list[MethodDescriptor]:
        """Get every method with this name on the first class in lookup order declaring it."""
        ...

    def resolve_invocation(self, site: InvocationSite) -> MethodDescriptor | None:
        """Bind a call site to a loaded method, or None if it targets outside code."""
        ...
