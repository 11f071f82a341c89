"""
Language parsers: Extract classes, methods and call sites from source code.

This module provides the parsing layer that turns source files into the raw
material for a program model.

Components:
    - LanguageParser: Protocol defining the parser interface
    - PythonParser: AST-based parser for Python files
    - ParseResult: Container for extracted classes, imports and typed variables

The parser extracts:
    - Classes: including one module pseudo-class per file owning its functions
    - Methods: parameter types, arity bounds, overload stubs
    - Calls: callee text as written, line, argument count, in evaluation order
    - Imports and TypedVars: used later to bind callee text to qualified targets

Adding a new language:
    1. Create a new parser class implementing LanguageParser protocol
    2. Implement parse() to return ParseResult
    3. Implement supports() to check file extensions
"""

from calltrace.languages.base import LanguageParser
from calltrace.languages.models import ParsedCall, ParsedClass, ParsedMethod, ParseResult, TypedVar
from calltrace.languages.python import PythonParser, module_name_for

__all__ = [
    "LanguageParser",
    "ParsedCall",
    "ParsedClass",
    "ParsedMethod",
    "ParseResult",
    "PythonParser",
    "TypedVar",
    "module_name_for",
]
