"""
Core module: data models, exceptions, configuration, and storage.

This module provides the foundational types and persistence layer:

Models (models.py):
    - MethodSignature: Identity of a method (owner, name, parameter types)
    - MethodDescriptor / ClassDescriptor: Declared methods and classes
    - CallTreeNode: One node of an exploration result, tagged with a Marker
    - VisitedPath: Immutable record of the methods on the current call chain

Configuration (config.py):
    - ExploreConfig: Depth and node budgets, resolution mode
    - ResolutionMode: NAME or SIGNATURE matching

Exceptions (exceptions.py):
    - CalltraceError: Base exception for all calltrace errors
    - ProgramLoadError: Program location missing or malformed
    - ParseError: Source file could not be parsed
    - RunNotFoundError: Requested saved run doesn't exist
    - StorageError: A run could not be written

Storage (storage/):
    - RunRepository: Facade for all database operations
    - Uses SQLite for persistence in .calltrace/runs.db
"""

from calltrace.core.config import ExploreConfig, ResolutionMode
from calltrace.core.exceptions import (
    CalltraceError,
    ParseError,
    ProgramLoadError,
    RunNotFoundError,
    StorageError,
)
from calltrace.core.models import (
    CallTreeNode,
    ClassDescriptor,
    ClassKind,
    InvocationSite,
    LoadStats,
    Marker,
    MethodDescriptor,
    MethodSignature,
    RunRecord,
    VisitedPath,
)
from calltrace.core.storage import RunRepository, get_default_db_path

__all__ = [
    # Models
    "MethodSignature",
    "MethodDescriptor",
    "ClassDescriptor",
    "ClassKind",
    "InvocationSite",
    "CallTreeNode",
    "Marker",
    "VisitedPath",
    "RunRecord",
    "LoadStats",
    # Configuration
    "ExploreConfig",
    "ResolutionMode",
    # Exceptions
    "CalltraceError",
    "ProgramLoadError",
    "ParseError",
    "RunNotFoundError",
    "StorageError",
    # Storage
    "RunRepository",
    "get_default_db_path",
]
