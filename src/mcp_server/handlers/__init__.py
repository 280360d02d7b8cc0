"""MCP tool handlers for Tedee Hub."""

from mcp_server.handlers.locks import LockHandlers
from mcp_server.handlers.query import QueryHandlers

__all__ = [
    "LockHandlers",
    "QueryHandlers",
]
