"""MCP server exposing a Mercurial command server connection.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import ConnectionConfig
from .errors import CommandServerError
from .protocol.capabilities import capability_name
from .transport.pipe_connection import PipeConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "hg-cmdserver",
    instructions="Run Mercurial commands through a persistent hg command server",
)

# Global connection state
_connection: PipeConnection | None = None


def _get_connection() -> PipeConnection:
    """Get the active connection, raising if not connected."""
    if _connection is None or _connection.closed:
        raise RuntimeError(
            "Not connected to Mercurial. Use the 'connect' tool first."
        )
    return _connection


def _server_info(conn: PipeConnection) -> dict[str, Any]:
    return {
        "pid": conn.pid,
        "encoding": conn.encoding,
        "capabilities": sorted(capability_name(c) for c in conn.capabilities),
        "repository": conn.config.cwd,
    }


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(repository: str | None = None, hg: str | None = None) -> dict[str, Any]:
    """Start a Mercurial command server.

    Any previous connection is closed first.

    Args:
        repository: Working directory for hg (default: HG_CMDSERVER_CWD
                    or the server's current directory).
        hg: Path to the hg executable (default: HG_CMDSERVER_HG or PATH).
    """
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None

    config = ConnectionConfig.from_env()
    if repository is not None:
        config = config.with_cwd(repository)
    if hg is not None:
        config = config.with_hg(hg)

    try:
        _connection = PipeConnection(config)
    except CommandServerError as e:
        logger.warning("Could not start command server: %s", e)
        return {"connected": False, "error": str(e)}

    return {"connected": True, **_server_info(_connection)}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Stop the command server."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    return {"disconnected": True}


@mcp.tool()
def get_server_info() -> dict[str, Any]:
    """Report the encoding and capabilities negotiated with the server."""
    return _server_info(_get_connection())


# ─── COMMAND TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def run_command(args: list[str]) -> dict[str, Any]:
    """Run an hg command and return its output and exit code.

    Interactive commands are not supported; pass options such as
    ``--noninteractive`` or ``-y`` where hg would prompt.

    Args:
        args: Command line without the ``hg`` executable,
              e.g. ["log", "-l", "5"].
    """
    global _connection
    if not args:
        return {"error": "args must contain at least the command name"}

    conn = _get_connection()
    try:
        result = conn.run(args)
    except CommandServerError as e:
        # The stream can no longer be trusted after a failed command.
        logger.warning("Command %r failed, dropping connection: %s", args, e)
        conn.close()
        _connection = None
        return {"error": str(e), "connected": False}

    return {"args": args, **result.to_dict(conn.encoding)}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("hg://server/info")
def resource_server_info() -> str:
    """Command server pid, encoding and capabilities."""
    if _connection is None or _connection.closed:
        return json.dumps({"connected": False})
    return json.dumps({"connected": True, **_server_info(_connection)})


@mcp.resource("hg://server/status")
def resource_server_status() -> str:
    """Connection state."""
    connected = _connection is not None and not _connection.closed
    return json.dumps({"connected": connected})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def inspect_repository(path: str) -> str:
    """Guide the AI through a first look at a Mercurial repository.

    Args:
        path: Repository directory.
    """
    return f"""Inspect the Mercurial repository at {path}.

Use the connect tool with repository={path!r}, then run_command with:
- ["summary"] for the working directory parent and branch
- ["status"] for uncommitted changes
- ["log", "-l", "10"] for recent history

Summarize the state of the repository and any uncommitted work."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=os.environ.get("HG_CMDSERVER_LOG_LEVEL", "INFO").upper())
    try:
        mcp.run(transport="stdio")
    finally:
        disconnect()


if __name__ == "__main__":
    main()
