"""Python AST parser for extracting classes, methods and call sites."""

from __future__ import annotations

import ast
from pathlib import Path

from calltrace.core.exceptions import ParseError
from calltrace.core.models import ClassKind
from calltrace.languages.models import (
    ParsedCall,
    ParsedClass,
    ParsedMethod,
    ParseResult,
    TypedVar,
)

_ANY = "Any"
_OVERLOAD_DECORATORS = {"overload", "typing.overload"}
_WRAPPER_TYPES = {"Optional", "typing.Optional", "Annotated", "typing.Annotated"}


def module_name_for(file: Path, root: Path | None = None) -> str:
    """Convert a file path to a module name, relative to ``root`` when given."""
    path = file.relative_to(root) if root is not None else Path(file.name)
    parts = list(path.with_suffix("").parts)

    if parts and parts[0] == "src":
        parts = parts[1:]
    if len(parts) > 1 and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


class PythonParser:
    """Parser for Python source files using the ast module."""

    def supports(self, file: Path) -> bool:
        """Check if this parser supports the given file."""
        return file.suffix == ".py"

    def parse(self, file: Path, module: str | None = None) -> ParseResult:
        """Parse a Python file and extract classes, methods and calls."""
        try:
            source = file.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Cannot read {file}: {e}") from e
        except OSError as e:
            raise ParseError(f"Cannot read {file}: {e}") from e

        visitor = _PythonVisitor(file, module or module_name_for(file))
        try:
            tree = ast.parse(source, filename=str(file))
            visitor.visit(tree)
        except SyntaxError as e:
            raise ParseError(f"Syntax error in {file}: {e}") from e
        except (RecursionError, ValueError) as e:
            # Deeply nested expressions, or NUL bytes on older interpreters
            raise ParseError(f"Cannot parse {file}: {e}") from e

        return ParseResult(
            file=file,
            module=visitor.module,
            classes=visitor.classes,
            imports=visitor.imports,
            typed_vars=visitor.typed_vars,
        )


class _PythonVisitor(ast.NodeVisitor):
    """AST visitor that collects classes, methods and the calls in their bodies.

    Calls are recorded in evaluation order: a call's function expression and
    arguments are visited before the call itself. Nested functions and lambdas
    are not methods; their calls belong to the enclosing method.
    """

    def __init__(self, file: Path, module: str) -> None:
        self.file = file
        self.module = module
        self.module_class = ParsedClass(
            name=module.rsplit(".", 1)[-1],
            qualified_name=module,
            file=file,
            line=1,
            kind=ClassKind.MODULE,
        )
        self.classes: list[ParsedClass] = [self.module_class]
        self.imports: dict[str, str] = {}
        self.typed_vars: list[TypedVar] = []

        self._class_stack: list[ParsedClass] = []

        self._method: ParsedMethod | None = None

        self._init_params: dict[str, str] = {}

    def _current_owner(self) -> ParsedClass:
        return self._class_stack[-1] if self._class_stack else self.module_class

    def visit_Import(self, node: ast.Import) -> None:
        """Handle: import foo, import foo.bar, import foo as f"""
        for alias in node.names:
            if alias.asname:
                self.imports[alias.asname] = alias.name
            else:
                # "import a.b" binds "a"
                head = alias.name.split(".")[0]
                self.imports[head] = head

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        """Handle: from foo import bar, from foo import bar as b"""
        module = node.module or ""

        if node.level > 0:
            module = self._resolve_relative_import(node.level, module)

        for alias in node.names:
            if alias.name == "*":
                continue
            local_name = alias.asname or alias.name
            self.imports[local_name] = f"{module}.{alias.name}" if module else alias.name

    def _resolve_relative_import(self, level: int, module: str) -> str:
        """Resolve a relative import to an absolute module path."""
        parts = self.module.split(".")
        if self.file.name == "__init__.py":
            # the package itself is the anchor for "from . import x"
            parts.append("__init__")
        if len(parts) < level:
            return module

        base_parts = parts[:-level]
        if module:
            return ".".join(base_parts + [module])
        return ".".join(base_parts)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        """Handle class definitions."""
        if self._method is not None:
            self.generic_visit(node)
            return

        owner = self._current_owner()
        parsed = ParsedClass(
            name=node.name,
            qualified_name=f"{owner.qualified_name}.{node.name}",
            file=self.file,
            line=node.lineno,
            bases=[
                name for name in (self._get_name_from_node(b) for b in node.bases) if name
            ],
        )
        self.classes.append(parsed)

        self._class_stack.append(parsed)
        for stmt in node.body:
            self.visit(stmt)
        self._class_stack.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        """Handle function and method definitions."""
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        """Handle async function definitions."""
        self._visit_function(node)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        """Common handler for sync and async functions."""
        if self._method is not None:
            for stmt in node.body:
                self.visit(stmt)
            return

        owner = self._current_owner()
        decorators = {self._get_name_from_node(d) for d in node.decorator_list}
        args = node.args

        positional = [*args.posonlyargs, *args.args]
        is_bound = owner.kind is ClassKind.CLASS and "staticmethod" not in decorators
        if is_bound and positional:
            positional = positional[1:]

        parameter_types = [self._annotation_text(a) for a in positional]
        if args.vararg:
            parameter_types.append("*" + self._annotation_text(args.vararg))
        parameter_types.extend(self._annotation_text(a) for a in args.kwonlyargs)
        if args.kwarg:
            parameter_types.append("**" + self._annotation_text(args.kwarg))

        required_kwonly = sum(1 for d in args.kw_defaults if d is None)
        min_arity = max(0, len(positional) - len(args.defaults)) + required_kwonly
        max_arity = None
        if not args.vararg and not args.kwarg:
            max_arity = len(positional) + len(args.kwonlyargs)

        method = ParsedMethod(
            name=node.name,
            owner=owner.qualified_name,
            line=node.lineno,
            parameter_types=parameter_types,
            min_arity=min_arity,
            max_arity=max_arity,
            is_overload=bool(decorators & _OVERLOAD_DECORATORS),
        )
        owner.methods.append(method)

        init_params: dict[str, str] = {}
        for arg in [*positional, *args.kwonlyargs]:
            if arg.annotation is None:
                continue
            type_name = self._extract_type_from_annotation(arg.annotation)
            if type_name:
                self.typed_vars.append(
                    TypedVar(
                        name=arg.arg,
                        type_name=type_name,
                        scope_qualified_name=method.qualified_name,
                    )
                )
                init_params[arg.arg] = type_name

        old_params = self._init_params
        self._init_params = init_params if node.name == "__init__" and is_bound else {}
        self._method = method

        for stmt in node.body:
            self.visit(stmt)

        self._method = None
        self._init_params = old_params

    def _annotation_text(self, arg: ast.arg) -> str:
        if arg.annotation is None:
            return _ANY
        return ast.unparse(arg.annotation)

    def _extract_type_from_annotation(self, node: ast.expr) -> str | None:
        """Extract the concrete type from an annotation.

        Unwraps Annotated[T, ...], Optional[T], "T" and T | None.
        """
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            try:
                node = ast.parse(node.value, mode="eval").body
            except SyntaxError:
                return None
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            left = node.left
            if isinstance(left, ast.Constant) and left.value is None:
                return self._extract_type_from_annotation(node.right)
            return self._extract_type_from_annotation(left)
        if isinstance(node, ast.Subscript):
            base_name = self._get_name_from_node(node.value)
            if base_name in _WRAPPER_TYPES:
                if isinstance(node.slice, ast.Tuple) and node.slice.elts:
                    return self._extract_type_from_annotation(node.slice.elts[0])
                return self._extract_type_from_annotation(node.slice)
        return self._get_name_from_node(node)

    def _track_assignment(self, target: ast.expr, type_name: str | None) -> None:
        """Record the type bound to a local name or a self attribute."""
        if self._method is None or not type_name:
            return

        if isinstance(target, ast.Name):
            self.typed_vars.append(
                TypedVar(
                    name=target.id,
                    type_name=type_name,
                    scope_qualified_name=self._method.qualified_name,
                )
            )
        elif (
            isinstance(target, ast.Attribute)
            and isinstance(target.value, ast.Name)
            and target.value.id == "self"
            and self._class_stack
        ):
            self.typed_vars.append(
                TypedVar(
                    name=f"self.{target.attr}",
                    type_name=type_name,
                    scope_qualified_name=self._class_stack[-1].qualified_name,
                )
            )

    def _assigned_type(self, value: ast.expr | None) -> str | None:
        """Type implied by an assigned value: a constructor call or an __init__ parameter."""
        if isinstance(value, ast.Call):
            return self._get_name_from_node(value.func)
        if isinstance(value, ast.Name):
            return self._init_params.get(value.id)
        return None

    def visit_Assign(self, node: ast.Assign) -> None:
        """Handle assignments for type inference."""
        type_name = self._assigned_type(node.value)
        for target in node.targets:
            self._track_assignment(target, type_name)
        self.generic_visit(node)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        """Handle annotated assignments (e.g., repo: Repository = ...)."""
        type_name = self._extract_type_from_annotation(node.annotation)
        if self._method is not None:
            self._track_assignment(node.target, type_name)
        elif self._class_stack and type_name and isinstance(node.target, ast.Name):
            # class-level field declarations describe instance attributes
            self.typed_vars.append(
                TypedVar(
                    name=f"self.{node.target.id}",
                    type_name=type_name,
                    scope_qualified_name=self._class_stack[-1].qualified_name,
                )
            )
        if node.value is not None:
            self.visit(node.value)

    def visit_Call(self, node: ast.Call) -> None:
        """Handle function and method calls, innermost first."""
        self.visit(node.func)
        for arg in node.args:
            self.visit(arg)
        for keyword in node.keywords:
            self.visit(keyword.value)

        if self._method is None:
            return

        callee_name = self._get_name_from_node(node.func)
        if callee_name and callee_name != "super":
            self._method.calls.append(
                ParsedCall(
                    callee_name=callee_name,
                    line=node.lineno,
                    arguments=self._count_arguments(node),
                )
            )

    def _count_arguments(self, node: ast.Call) -> int | None:
        """Number of arguments passed, or None when splats hide the count."""
        if any(isinstance(a, ast.Starred) for a in node.args):
            return None
        if any(k.arg is None for k in node.keywords):
            return None
        return len(node.args) + len(node.keywords)

    def _get_name_from_node(self, node: ast.AST | None) -> str | None:
        """Extract a name string from various AST node types."""
        if node is None:
            return None

        if isinstance(node, ast.Name):
            return node.id
        elif isinstance(node, ast.Attribute):
            value_name = self._get_name_from_node(node.value)
            if value_name:
                return f"{value_name}.{node.attr}"
            return node.attr
        elif isinstance(node, ast.Call):
            return self._get_name_from_node(node.func)
        elif isinstance(node, ast.Subscript):
            return self._get_name_from_node(node.value)
        return None
