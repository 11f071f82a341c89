"""Map invocation sites to target methods."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from calltrace.core.config import ResolutionMode
from calltrace.core.program.model import split_target

if TYPE_CHECKING:
    from calltrace.core.models import InvocationSite, MethodDescriptor
    from calltrace.core.program.base import ProgramModel


class ResolutionStatus(Enum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one call site.

    ``method`` is set only when RESOLVED; ``candidates`` only when AMBIGUOUS.
    """

    status: ResolutionStatus
    method: MethodDescriptor | None = None
    candidates: tuple[MethodDescriptor, ...] = ()

    @classmethod
    def resolved(cls, method: MethodDescriptor) -> Resolution:
        return cls(ResolutionStatus.RESOLVED, method=method)

    @classmethod
    def unresolved(cls) -> Resolution:
        return cls(ResolutionStatus.UNRESOLVED)


class MethodResolver:
    """Resolves call sites against a program model.

    NAME mode takes the first declared method with the called name, ignoring
    argument counts. SIGNATURE mode keeps only the same-name methods whose
    parameter list accepts the call's argument count; more than one survivor
    is reported as AMBIGUOUS instead of guessing. Python @overload stubs are
    dropped from the candidates when their implementation is loaded.
    """

    def __init__(self, program: ProgramModel, mode: ResolutionMode = ResolutionMode.NAME) -> None:
        self._program = program
        self._mode = mode

    @property
    def mode(self) -> ResolutionMode:
        return self._mode

    def resolve(self, site: InvocationSite) -> Resolution:
        if self._mode is ResolutionMode.NAME:
            method = self._program.resolve_invocation(site)
            if method is None:
                return Resolution.unresolved()
            return Resolution.resolved(method)
        return self._resolve_by_signature(site)

    def _resolve_by_signature(self, site: InvocationSite) -> Resolution:
        target = split_target(site.text)
        if target is None:
            return Resolution.unresolved()
        owner_name, method_name = target

        cls = self._program.find_class(owner_name)
        if cls is None:
            return Resolution.unresolved()

        candidates = self._program.find_methods(cls, method_name)
        implementations = [m for m in candidates if not m.is_overload]
        if implementations:
            # @overload stubs only type the call; the implementation runs
            candidates = implementations
        if site.arguments is not None:
            candidates = [m for m in candidates if m.accepts(site.arguments)]

        if not candidates:
            return Resolution.unresolved()
        if len(candidates) == 1:
            return Resolution.resolved(candidates[0])
        return Resolution(ResolutionStatus.AMBIGUOUS, candidates=tuple(candidates))
