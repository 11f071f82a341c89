"""Path-sensitive depth-first call tree exploration."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from calltrace.core.config import ExploreConfig
from calltrace.core.explorer.resolver import MethodResolver, ResolutionStatus
from calltrace.core.models import (
    CallTreeNode,
    InvocationSite,
    Marker,
    MethodDescriptor,
    MethodSignature,
    VisitedPath,
)
from calltrace.core.program.loader import load_program

if TYPE_CHECKING:
    from calltrace.core.program.base import ProgramModel

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """A method whose call sites are still being expanded."""

    node: CallTreeNode
    sites: Iterator[InvocationSite]
    path: VisitedPath
    depth: int


class CallGraphExplorer:
    """Builds call trees from an entry method.

    Each branch carries its own VisitedPath, so a method reached along two
    different call chains is expanded twice and a cut marks a repeat on that
    chain only. Nothing is memoized across branches.
    """

    def __init__(self, program: ProgramModel, config: ExploreConfig | None = None) -> None:
        self._program = program
        self._config = config or ExploreConfig()
        self._resolver = MethodResolver(program, self._config.resolution)

    def explore(self, class_name: str, method_name: str) -> CallTreeNode:
        """Explore from ``class_name.method_name``.

        A missing class or method yields a single NOT_FOUND node.
        """
        cls = self._program.find_class(class_name)
        if cls is None:
            logger.info("Entry class %s not found", class_name)
            return CallTreeNode.not_found(f"Class not found: {class_name}")

        method = self._program.find_method_by_name(cls, method_name)
        if method is None:
            logger.info("Entry method %s.%s not found", class_name, method_name)
            return CallTreeNode.not_found(
                f"Method not found: {class_name}.{method_name}",
                signature=MethodSignature(owner=class_name, name=method_name),
            )

        root = self.expand(method)
        logger.debug(
            "Explored %s: %d nodes, %d cut, %d external",
            method.signature.qualified_name,
            len(root),
            root.count(Marker.RECURSIVE_CUT),
            root.count(Marker.EXTERNAL_UNRESOLVED),
        )
        return root

    def expand(self, method: MethodDescriptor) -> CallTreeNode:
        """Expand ``method`` with a fresh path.

        Iterative: the top frame's next call site is handled, and a resolved
        callee pushes a new frame that is fully expanded before its parent
        moves on, which gives the same pre-order as a recursive walk.
        """
        max_depth = self._config.max_depth
        max_nodes = self._config.max_nodes

        root = CallTreeNode(signature=method.signature)
        expanded = 1
        stack = [
            _Frame(
                node=root,
                sites=iter(method.invocations),
                path=VisitedPath([method.signature]),
                depth=0,
            )
        ]

        while stack:
            frame = stack[-1]
            site = next(frame.sites, None)
            if site is None:
                stack.pop()
                continue

            resolution = self._resolver.resolve(site)

            if resolution.status is ResolutionStatus.AMBIGUOUS:
                frame.node.children.append(
                    CallTreeNode(
                        signature=None,
                        marker=Marker.AMBIGUOUS,
                        text=site.text,
                        line=site.line,
                        candidates=tuple(m.signature for m in resolution.candidates),
                    )
                )
                continue

            callee = resolution.method
            if callee is None:
                frame.node.children.append(CallTreeNode.external(site))
                continue

            if callee.signature in frame.path:
                frame.node.children.append(
                    CallTreeNode(
                        signature=callee.signature,
                        marker=Marker.RECURSIVE_CUT,
                        line=site.line,
                    )
                )
                continue

            depth = frame.depth + 1
            if (max_depth is not None and depth > max_depth) or (
                max_nodes is not None and expanded >= max_nodes
            ):
                frame.node.children.append(
                    CallTreeNode(
                        signature=callee.signature,
                        marker=Marker.BUDGET_EXCEEDED,
                        line=site.line,
                    )
                )
                continue

            child = CallTreeNode(signature=callee.signature, line=site.line)
            frame.node.children.append(child)
            expanded += 1
            stack.append(
                _Frame(
                    node=child,
                    sites=iter(callee.invocations),
                    path=frame.path.extend(callee.signature),
                    depth=depth,
                )
            )

        return root


def analyze_call_stack(
    program_location: Path,
    class_name: str,
    method_name: str,
    config: ExploreConfig | None = None,
    exclude_patterns: list[str] | None = None,
) -> CallTreeNode:
    """Load a program and explore the call tree of one entry method.

    Raises:
        ProgramLoadError: The program location cannot be loaded.
    """
    program, _ = load_program(Path(program_location), exclude_patterns=exclude_patterns)
    return CallGraphExplorer(program, config).explore(class_name, method_name)
