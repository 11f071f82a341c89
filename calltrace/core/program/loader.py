"""Loaders that build a Program from a program location."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Callable
from pathlib import Path

from calltrace.core.exceptions import ParseError, ProgramLoadError
from calltrace.core.models import (
    ClassDescriptor,
    ClassKind,
    InvocationSite,
    LoadStats,
    MethodDescriptor,
    MethodSignature,
)
from calltrace.core.program.manifest import load_manifest
from calltrace.core.program.model import Program, split_target
from calltrace.languages import ParsedCall, ParsedClass, ParsedMethod, ParseResult, PythonParser
from calltrace.languages.python import module_name_for

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Path, int, int], None]

_BOUND_RECEIVERS = ("self", "cls")
_MAX_REEXPORT_HOPS = 5

DEFAULT_EXCLUDES = [
    "__pycache__",
    "*.egg-info",
    "node_modules",
    "build",
    "dist",
    "venv",
    ".venv",
]


def load_program(
    location: Path,
    exclude_patterns: list[str] | None = None,
    on_progress: ProgressCallback | None = None,
) -> tuple[Program, LoadStats]:
    """Load a program from a directory of Python sources, a .py file, or a JSON manifest.

    Raises:
        ProgramLoadError: The location is missing, unreadable, or not a supported format.
    """
    location = Path(location)
    if not location.exists():
        raise ProgramLoadError(f"Program location does not exist: {location}")

    if location.is_dir():
        loader = PythonProgramLoader(exclude_patterns)
        return loader.load_directory(location, on_progress=on_progress)
    if location.suffix == ".json":
        return load_manifest(location)
    if location.suffix == ".py":
        return PythonProgramLoader(exclude_patterns).load_file(location)

    raise ProgramLoadError(f"Unsupported program location: {location}")


class PythonProgramLoader:
    """Coordinates file parsing and call-site binding for Python sources."""

    def __init__(self, exclude_patterns: list[str] | None = None) -> None:
        self._parser = PythonParser()
        self._excludes = DEFAULT_EXCLUDES + (exclude_patterns or [])

    def load_directory(
        self,
        directory: Path,
        on_progress: ProgressCallback | None = None,
    ) -> tuple[Program, LoadStats]:
        """Load all Python files in a directory.

        Uses a two-pass approach:
        1. First pass: Parse every file
        2. Second pass: Bind call sites against every parsed class

        Files that fail to parse are reported in LoadStats.errors and skipped.
        """
        stats = LoadStats()

        try:
            python_files = sorted(directory.rglob("*.py"))
        except OSError as e:
            raise ProgramLoadError(f"Cannot read program location {directory}: {e}") from e
        total_files = len(python_files)

        results: list[ParseResult] = []
        for i, file in enumerate(python_files):
            relative_path = str(file.relative_to(directory))
            if self._should_exclude(relative_path):
                stats.skipped += 1
            else:
                try:
                    results.append(self._parser.parse(file, module_name_for(file, directory)))
                    stats.files += 1
                    logger.debug("Parsed %s", relative_path)
                except ParseError as e:
                    logger.warning("%s", e)
                    stats.errors.append(str(e))

            if on_progress:
                on_progress(file, i + 1, total_files)

        program = self._build(results, stats)
        logger.info("Loaded %s from %s", stats, directory)
        return program, stats

    def load_file(self, file: Path) -> tuple[Program, LoadStats]:
        """Load a single Python file as a program."""
        stats = LoadStats()
        try:
            result = self._parser.parse(file)
        except ParseError as e:
            raise ProgramLoadError(str(e)) from e
        stats.files = 1
        return self._build([result], stats), stats

    def _should_exclude(self, path: str) -> bool:
        """Check if a path matches any exclusion pattern.

        Excludes:
        - Any path component starting with '.' (hidden files/directories)
        - Any path component matching the exclusion patterns
        """
        for part in Path(path).parts:
            if part.startswith("."):
                return True
            for pattern in self._excludes:
                if fnmatch.fnmatch(part, pattern):
                    return True
        return False

    def _build(self, results: list[ParseResult], stats: LoadStats) -> Program:
        binder = _Binder(results)
        program = Program()

        for result in results:
            for parsed_class in result.classes:
                methods = tuple(
                    self._describe(parsed_method, result, binder)
                    for parsed_method in parsed_class.methods
                )
                program.add_class(
                    ClassDescriptor(
                        qualified_name=parsed_class.qualified_name,
                        methods=methods,
                        bases=tuple(binder.bases_of(parsed_class.qualified_name)),
                        kind=parsed_class.kind,
                        file=result.file,
                        line=parsed_class.line,
                    )
                )

        stats.classes = program.num_classes
        stats.methods = program.num_methods
        stats.invocations, stats.bound = program.invocation_counts()
        return program

    def _describe(
        self, parsed_method: ParsedMethod, result: ParseResult, binder: _Binder
    ) -> MethodDescriptor:
        return MethodDescriptor(
            signature=MethodSignature(
                owner=parsed_method.owner,
                name=parsed_method.name,
                parameter_types=tuple(parsed_method.parameter_types),
            ),
            invocations=tuple(
                InvocationSite(
                    text=binder.bind_call(call, parsed_method, result),
                    line=call.line,
                    arguments=call.arguments,
                )
                for call in parsed_method.calls
            ),
            file=result.file,
            line=parsed_method.line,
            min_arity=parsed_method.min_arity,
            max_arity=parsed_method.max_arity,
            is_overload=parsed_method.is_overload,
        )


class _Binder:
    """Binds callee text as written to qualified ``owner.method`` targets.

    This handles:
    - self.method / cls.method calls (method on the enclosing class)
    - self.attr.method calls (via the attribute's recorded type)
    - super().method calls (first loaded base class)
    - Typed parameter and local calls (service.method where service: Service)
    - Imported names and module-local names (module.func, Class.method)
    - Constructor calls (Class() binds to Class.__init__)
    - Names re-exported through a package's imports
    """

    def __init__(self, results: list[ParseResult]) -> None:
        self._modules: dict[str, ParseResult] = {}
        self._classes: dict[str, ParsedClass] = {}
        self._callables: set[str] = set()
        self._class_results: dict[str, ParseResult] = {}

        for result in results:
            self._modules.setdefault(result.module, result)
            for parsed_class in result.classes:
                self._classes.setdefault(parsed_class.qualified_name, parsed_class)
                self._class_results.setdefault(parsed_class.qualified_name, result)
                self._callables.update(m.qualified_name for m in parsed_class.methods)

        self._bases: dict[str, list[str]] = {}
        for qualified_name, parsed_class in self._classes.items():
            result = self._class_results[qualified_name]
            self._bases[qualified_name] = [
                self.qualify(base, result) or base for base in parsed_class.bases
            ]

    def bases_of(self, class_name: str) -> list[str]:
        return self._bases.get(class_name, [])

    def bind_call(self, call: ParsedCall, method: ParsedMethod, result: ParseResult) -> str:
        """Return the qualified target for a call, or its source text if it cannot be bound."""
        parts = call.callee_name.split(".")
        head, rest = parts[0], parts[1:]

        owner = self._classes.get(method.owner)
        in_class = owner is not None and owner.kind is ClassKind.CLASS

        if in_class and rest and head in _BOUND_RECEIVERS:
            if len(rest) == 1:
                return f"{method.owner}.{rest[0]}"
            attr_type = self._var_type(f"self.{rest[0]}", method.owner, result)
            if attr_type:
                return ".".join([attr_type, *rest[1:]])
            return call.callee_name

        if in_class and rest and head == "super":
            for base in self.bases_of(method.owner):
                if base in self._classes:
                    return ".".join([base, *rest])
            return call.callee_name

        if rest:
            var_type = self._var_type(head, method.qualified_name, result)
            if var_type:
                return ".".join([var_type, *rest])

        qualified = self.qualify(call.callee_name, result)
        if qualified is None:
            return call.callee_name
        target = self._classes.get(qualified)
        if target is not None and target.kind is ClassKind.CLASS:
            return f"{qualified}.__init__"
        return qualified

    def qualify(self, name: str, result: ParseResult) -> str | None:
        """Qualify a dotted name through the file's imports or module-local definitions."""
        head, _, rest = name.partition(".")

        if head in result.imports:
            base = result.imports[head]
        else:
            local = f"{result.module}.{head}"
            if local not in self._classes and local not in self._callables:
                return None
            base = local

        qualified = f"{base}.{rest}" if rest else base
        return self._follow_reexports(qualified)

    def _var_type(self, name: str, scope: str, result: ParseResult) -> str | None:
        """Qualified class of a typed variable in ``scope``, if it is a loaded class."""
        for typed_var in result.typed_vars:
            if typed_var.name != name or typed_var.scope_qualified_name != scope:
                continue
            qualified = self.qualify(typed_var.type_name, result)
            if qualified is None:
                continue
            target = self._classes.get(qualified)
            if target is not None and target.kind is ClassKind.CLASS:
                return qualified
        return None

    def _is_known(self, qualified: str) -> bool:
        if qualified in self._classes or qualified in self._callables:
            return True
        target = split_target(qualified)
        if target is None:
            return False
        owner = self._classes.get(target[0])
        return owner is not None and owner.kind is ClassKind.CLASS

    def _follow_reexports(self, qualified: str) -> str:
        """Rewrite ``pkg.Name`` to where ``pkg`` imported ``Name`` from."""
        for _ in range(_MAX_REEXPORT_HOPS):
            if self._is_known(qualified):
                return qualified
            parts = qualified.split(".")
            rewritten = None
            for i in range(len(parts) - 1, 0, -1):
                module = self._modules.get(".".join(parts[:i]))
                if module is None:
                    continue
                source = module.imports.get(parts[i])
                if source is not None:
                    rewritten = ".".join([source, *parts[i + 1 :]])
                break
            if rewritten is None or rewritten == qualified:
                return qualified
            qualified = rewritten
        return qualified
