# Lookback API Client
# File: transports/stdio_server.py
# Version: v1

"""STDIO entrypoint for the Lookback API MCP server.

This is the script behind the ``lookback-api-mcp`` console command. It
creates a FastMCP server, registers the Lookback tools and runs the built-in
stdio transport.
"""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from ..tools import tasks


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    # stdout carries the MCP protocol; keep logs on stderr.
    logging.basicConfig(level=logging.INFO)

    mcp = FastMCP("lookback-api-mcp")
    tasks.register_tools(mcp)

    # Let FastMCP handle stdio + event loop setup.
    mcp.run()


if __name__ == "__main__":
    main()
