"""Exploration settings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResolutionMode(Enum):
    """How call targets are matched to declared methods."""

    NAME = "name"
    SIGNATURE = "signature"


@dataclass(frozen=True)
class ExploreConfig:
    """Bounds and resolution policy for one exploration.

    Attributes:
        max_depth: Deepest EXPANDED node allowed (root is depth 0). None = unbounded.
        max_nodes: Total EXPANDED nodes allowed, root included. None = unbounded.
        resolution: NAME picks the first declared method with the called name;
            SIGNATURE also matches argument counts and reports ambiguity.
    """

    max_depth: int | None = None
    max_nodes: int | None = None
    resolution: ResolutionMode = ResolutionMode.NAME

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_nodes is not None and self.max_nodes < 1:
            raise ValueError(f"max_nodes must be >= 1, got {self.max_nodes}")
