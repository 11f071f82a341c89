"""
MCP server for Calltrace.

Exposes call tree exploration to LLMs via the Model Context Protocol.

Tools:
    - calltrace_explore: Explore the call tree of an entry method
    - calltrace_find: Search a program for methods
    - calltrace_runs: List saved runs
    - calltrace_show: Return the call tree of a saved run

Usage:
    Install: pip install calltrace
    Run: calltrace-mcp
"""

import asyncio

from calltrace.mcp.server import serve as _serve


def serve() -> None:
    """Entry point for the MCP server."""
    asyncio.run(_serve())


__all__ = ["serve"]
