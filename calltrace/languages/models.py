"""Data models for language parser results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from calltrace.core.models import ClassKind


@dataclass
class ParsedCall:
    """A call expression as written in source (before binding)."""

    callee_name: str
    line: int
    arguments: int | None = None


@dataclass
class ParsedMethod:
    """A function or method extracted from source code (before binding)."""

    name: str
    owner: str
    line: int
    parameter_types: list[str] = field(default_factory=list)
    min_arity: int = 0
    max_arity: int | None = None
    is_overload: bool = False
    calls: list[ParsedCall] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}.{self.name}"


@dataclass
class ParsedClass:
    """A class, or the module pseudo-class that owns module-level functions."""

    name: str
    qualified_name: str
    file: Path
    line: int
    kind: ClassKind = ClassKind.CLASS
    bases: list[str] = field(default_factory=list)
    methods: list[ParsedMethod] = field(default_factory=list)


@dataclass
class TypedVar:
    """A variable with a known type annotation or constructor assignment."""

    name: str
    type_name: str
    scope_qualified_name: str


@dataclass
class ParseResult:
    """Result of parsing a file."""

    file: Path
    module: str
    classes: list[ParsedClass]
    imports: dict[str, str]
    typed_vars: list[TypedVar] = field(default_factory=list)

    @property
    def methods(self) -> list[ParsedMethod]:
        return [m for c in self.classes for m in c.methods]
