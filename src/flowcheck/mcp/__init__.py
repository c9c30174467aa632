"""MCP server exposing validation and version tools."""

from flowcheck.mcp.server import configure, mcp

__all__ = ["configure", "mcp"]
