"""
Program model: read-only class and method lookup over a loaded program.

Model:
    - ProgramModel: Protocol the explorer consumes
    - Program: In-memory implementation keyed by qualified class name

Loading:
    - load_program(): Dispatch on the location (directory, .py file, .json manifest)
    - PythonProgramLoader: Two-pass parse and bind of Python sources
    - load_manifest(): Read a JSON program manifest
"""

from calltrace.core.program.base import ProgramModel
from calltrace.core.program.loader import DEFAULT_EXCLUDES, PythonProgramLoader, load_program
from calltrace.core.program.manifest import load_manifest
from calltrace.core.program.model import Program, split_target

__all__ = [
    "DEFAULT_EXCLUDES",
    "Program",
    "ProgramModel",
    "PythonProgramLoader",
    "load_manifest",
    "load_program",
    "split_target",
]
