"""
Calltrace: Static call tree exploration for Python programs.

Calltrace loads a program (a source tree, a single module, or a JSON
manifest), then walks every call chain reachable from one entry method:
- Expand each branch with its own visited path
- Cut a chain where it re-enters a method already on it
- Mark calls that leave the program as external

Usage:
    from calltrace.core.explorer import analyze_call_stack, render

    tree = analyze_call_stack(Path("src"), "app.service.Service", "run")
    print(render(tree), end="")
"""

__version__ = "0.1.0"
