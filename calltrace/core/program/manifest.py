"""Load a Program from a JSON program manifest.

A manifest lets another front end (for example a bytecode reader) hand a
pre-extracted program to the explorer:

    {"classes": [
        {"name": "com.acme.AuthController",
         "bases": ["com.acme.BaseController"],
         "methods": [
            {"name": "login",
             "parameters": ["String", "String"],
             "line": 12,
             "calls": [
                "com.acme.AuthService.authenticate",
                {"target": "java.util.Objects.requireNonNull", "line": 13, "arguments": 1}
             ]}
         ]}
    ]}

Call targets are used verbatim as invocation site text. ``kind`` may be
"class" (default) or "module"; ``varargs: true`` lifts a method's arity cap.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from calltrace.core.exceptions import ProgramLoadError
from calltrace.core.models import (
    ClassDescriptor,
    ClassKind,
    InvocationSite,
    LoadStats,
    MethodDescriptor,
    MethodSignature,
)
from calltrace.core.program.model import Program


def load_manifest(file: Path) -> tuple[Program, LoadStats]:
    """Read a manifest file.

    Raises:
        ProgramLoadError: The file cannot be read or does not follow the format.
    """
    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except OSError as e:
        raise ProgramLoadError(f"Cannot read manifest {file}: {e}") from e
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProgramLoadError(f"Invalid manifest {file}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("classes"), list):
        raise ProgramLoadError(f"Manifest {file} must be an object with a 'classes' list")

    program = Program()
    stats = LoadStats()
    stats.files = 1

    for index, entry in enumerate(data["classes"]):
        program.add_class(_parse_class(entry, file, f"classes[{index}]"))

    stats.classes = program.num_classes
    stats.methods = program.num_methods
    stats.invocations, stats.bound = program.invocation_counts()
    return program, stats


def _require(entry: dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = entry.get(key)
    if not isinstance(value, kind):
        raise ProgramLoadError(f"{where}.{key} must be a {kind.__name__}")
    return value


def _optional(entry: dict[str, Any], key: str, kind: type, where: str, default: Any) -> Any:
    if key not in entry:
        return default
    return _require(entry, key, kind, where)


def _string_list(entry: dict[str, Any], key: str, where: str) -> tuple[str, ...]:
    values = _optional(entry, key, list, where, [])
    if not all(isinstance(v, str) for v in values):
        raise ProgramLoadError(f"{where}.{key} must be a list of strings")
    return tuple(values)


def _parse_class(entry: Any, file: Path, where: str) -> ClassDescriptor:
    if not isinstance(entry, dict):
        raise ProgramLoadError(f"{where} must be an object")

    name = _require(entry, "name", str, where)
    kind_value = _optional(entry, "kind", str, where, ClassKind.CLASS.value)
    try:
        kind = ClassKind(kind_value)
    except ValueError as e:
        raise ProgramLoadError(f"{where}.kind must be 'class' or 'module'") from e

    methods = _optional(entry, "methods", list, where, [])
    return ClassDescriptor(
        qualified_name=name,
        methods=tuple(
            _parse_method(m, name, file, f"{where}.methods[{i}]") for i, m in enumerate(methods)
        ),
        bases=_string_list(entry, "bases", where),
        kind=kind,
        file=file,
        line=_optional(entry, "line", int, where, 0),
    )


def _parse_method(entry: Any, owner: str, file: Path, where: str) -> MethodDescriptor:
    if not isinstance(entry, dict):
        raise ProgramLoadError(f"{where} must be an object")

    parameters = _string_list(entry, "parameters", where)
    varargs = _optional(entry, "varargs", bool, where, False)
    calls = _optional(entry, "calls", list, where, [])

    return MethodDescriptor(
        signature=MethodSignature(
            owner=owner,
            name=_require(entry, "name", str, where),
            parameter_types=parameters,
        ),
        invocations=tuple(_parse_call(c, f"{where}.calls[{i}]") for i, c in enumerate(calls)),
        file=file,
        line=_optional(entry, "line", int, where, 0),
        min_arity=len(parameters) - 1 if varargs and parameters else len(parameters),
        max_arity=None if varargs else len(parameters),
    )


def _parse_call(entry: Any, where: str) -> InvocationSite:
    if isinstance(entry, str):
        return InvocationSite(text=entry)
    if not isinstance(entry, dict):
        raise ProgramLoadError(f"{where} must be a string or an object")

    arguments = entry.get("arguments")
    if arguments is not None and not isinstance(arguments, int):
        raise ProgramLoadError(f"{where}.arguments must be an int")

    return InvocationSite(
        text=_require(entry, "target", str, where),
        line=_optional(entry, "line", int, where, 0),
        arguments=arguments,
    )
