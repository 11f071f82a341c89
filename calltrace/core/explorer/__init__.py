"""
Call tree exploration and rendering.

Components:
    - MethodResolver: Binds a call site to a method (NAME or SIGNATURE mode)
    - CallGraphExplorer: Path-sensitive DFS from an entry method
    - analyze_call_stack(): Load a program location and explore one entry
    - render(): Indented plain text, one line per node
    - render_rich(): rich Tree for terminal output
    - tree_to_dict(): JSON-ready projection
"""

from calltrace.core.explorer.explorer import CallGraphExplorer, analyze_call_stack
from calltrace.core.explorer.render import label, render, render_rich, tree_to_dict
from calltrace.core.explorer.resolver import MethodResolver, Resolution, ResolutionStatus

__all__ = [
    "CallGraphExplorer",
    "MethodResolver",
    "Resolution",
    "ResolutionStatus",
    "analyze_call_stack",
    "label",
    "render",
    "render_rich",
    "tree_to_dict",
]
