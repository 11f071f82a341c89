"""MCP server implementation for Calltrace."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from calltrace.core.config import ExploreConfig, ResolutionMode
from calltrace.core.exceptions import CalltraceError
from calltrace.core.explorer import CallGraphExplorer, render, tree_to_dict
from calltrace.core.models import MethodDescriptor
from calltrace.core.program import load_program
from calltrace.core.storage import RunRepository, get_default_db_path

server = Server("calltrace")


def _get_repo(db_path: Path | None = None, must_exist: bool = True) -> RunRepository:
    """Get the run repository, by default the one for the current directory."""
    db_path = db_path or get_default_db_path(Path.cwd())
    if must_exist and not db_path.exists():
        raise FileNotFoundError(
            f"No saved runs found. Explore with save=true first.\nExpected: {db_path}"
        )
    return RunRepository(db_path)


def _method_to_dict(method: MethodDescriptor) -> dict[str, Any]:
    """Convert a MethodDescriptor to a JSON-serializable dict."""
    return {
        "class_name": method.signature.owner,
        "method_name": method.name,
        "qualified_name": method.signature.qualified_name,
        "signature": method.signature.display(),
        "file": str(method.file) if method.file else None,
        "line": method.line,
        "calls": len(method.invocations),
    }


@server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="calltrace_explore",
            description=(
                "Explore every call chain reachable from an entry method. "
                "Returns the call tree as indented text and as nested nodes marking "
                "recursive cuts, external calls and budget limits."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "program": {
                        "type": "string",
                        "description": "Source directory, .py file, or .json manifest",
                    },
                    "class_name": {
                        "type": "string",
                        "description": "Qualified name of the entry class",
                    },
                    "method_name": {
                        "type": "string",
                        "description": "Name of the entry method",
                    },
                    "max_depth": {
                        "type": "integer",
                        "description": "Maximum call depth to expand (optional)",
                    },
                    "max_nodes": {
                        "type": "integer",
                        "description": "Maximum methods to expand (optional)",
                    },
                    "resolution": {
                        "type": "string",
                        "enum": ["name", "signature"],
                        "description": "How call targets are matched (default: name)",
                        "default": "name",
                    },
                    "save": {
                        "type": "boolean",
                        "description": "Store the run for later retrieval",
                        "default": False,
                    },
                },
                "required": ["program", "class_name", "method_name"],
            },
        ),
        Tool(
            name="calltrace_find",
            description=(
                "Search a program for methods by qualified name. "
                "Supports partial matching; use it to pick an entry point."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "program": {
                        "type": "string",
                        "description": "Source directory, .py file, or .json manifest",
                    },
                    "query": {
                        "type": "string",
                        "description": "Search query (partial qualified name match)",
                    },
                },
                "required": ["program", "query"],
            },
        ),
        Tool(
            name="calltrace_runs",
            description="List saved exploration runs, newest first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of runs to return (optional)",
                    },
                },
            },
        ),
        Tool(
            name="calltrace_show",
            description="Return the call tree of a saved run.",
            inputSchema={
                "type": "object",
                "properties": {
                    "run_id": {
                        "type": "integer",
                        "description": "ID of the saved run",
                    },
                },
                "required": ["run_id"],
            },
        ),
    ]


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "calltrace_explore":
            result = _handle_explore(
                arguments["program"],
                arguments["class_name"],
                arguments["method_name"],
                max_depth=arguments.get("max_depth"),
                max_nodes=arguments.get("max_nodes"),
                resolution=arguments.get("resolution", "name"),
                save=arguments.get("save", False),
            )
        elif name == "calltrace_find":
            result = _handle_find(arguments["program"], arguments["query"])
        elif name == "calltrace_runs":
            result = _handle_runs(arguments.get("limit"))
        elif name == "calltrace_show":
            result = _handle_show(arguments["run_id"])
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except FileNotFoundError as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]
    except CalltraceError as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]
    except (KeyError, TypeError, ValueError) as e:
        return [TextContent(type="text", text=json.dumps({"error": f"Invalid arguments: {e}"}))]


def _handle_explore(
    program: str,
    class_name: str,
    method_name: str,
    max_depth: int | None = None,
    max_nodes: int | None = None,
    resolution: str = "name",
    save: bool = False,
    db_path: Path | None = None,
) -> dict[str, Any]:
    """Handle calltrace_explore tool."""
    location = Path(program).resolve()
    mode = ResolutionMode(resolution)
    config = ExploreConfig(max_depth=max_depth, max_nodes=max_nodes, resolution=mode)

    model, stats = load_program(location)
    tree = CallGraphExplorer(model, config).explore(class_name, method_name)

    result: dict[str, Any] = {
        "entry": f"{class_name}.{method_name}",
        "text": render(tree),
        "tree": tree_to_dict(tree),
        "errors": stats.errors,
    }
    if save:
        with _get_repo(db_path, must_exist=False) as repo:
            result["run_id"] = repo.save_run(tree, str(location), class_name, method_name, mode)
    return result


def _handle_find(program: str, query: str) -> dict[str, Any]:
    """Handle calltrace_find tool."""
    model, _ = load_program(Path(program).resolve())
    return {
        "results": [_method_to_dict(m) for m in model.find(query)],
    }


def _handle_runs(limit: int | None = None, db_path: Path | None = None) -> dict[str, Any]:
    """Handle calltrace_runs tool."""
    with _get_repo(db_path) as repo:
        return {
            "results": [r.to_dict() for r in repo.runs.list(limit)],
        }


def _handle_show(run_id: int, db_path: Path | None = None) -> dict[str, Any]:
    """Handle calltrace_show tool."""
    with _get_repo(db_path) as repo:
        run = repo.runs.get(run_id)
        tree = repo.load_tree(run_id)
        return {
            "run": run.to_dict(),
            "text": render(tree),
            "tree": tree_to_dict(tree),
        }


async def serve() -> None:
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
