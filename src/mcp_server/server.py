"""MCP server implementation for Tedee Hub."""

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent

from config import HubConfig
from devices.manager import DeviceManager
from mcp_server.handlers import LockHandlers, QueryHandlers
from mcp_server.tools import get_all_tools
from utils.errors import (
    DEFAULT_HANDLER_TIMEOUT,
    ErrorCategory,
    ToolError,
    classify_exception,
    generate_request_id,
    get_recovery_suggestion,
)

logger = logging.getLogger(__name__)

# Timeout for tool handler execution
TOOL_TIMEOUT = DEFAULT_HANDLER_TIMEOUT


class TedeeMcpServer:
    """MCP server for Tedee locks."""

    def __init__(self, config: HubConfig, device_manager: DeviceManager):
        self.config = config
        self.device_manager = device_manager

        self.query = QueryHandlers(device_manager)
        self.locks = LockHandlers(device_manager)

        self.server = Server("tedee-hub")
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Set up MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list:
            return get_all_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            result = await self.call_tool(name, arguments or {})
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Run a tool call, turning every failure into a structured error."""
        request_id = generate_request_id()
        device_id = arguments.get("device_id")

        logger.info(f"[{request_id}] Tool call: {name} (device={device_id or 'N/A'})")

        try:
            async with asyncio.timeout(TOOL_TIMEOUT):
                result = await self._handle_tool(name, arguments)
        except asyncio.TimeoutError:
            logger.error(f"[{request_id}] Tool {name} timed out after {TOOL_TIMEOUT}s")
            error = ToolError(
                category=ErrorCategory.TIMEOUT,
                message=f"Operation timed out after {TOOL_TIMEOUT} seconds",
                device_id=device_id,
                request_id=request_id,
                recovery=get_recovery_suggestion(ErrorCategory.TIMEOUT),
            )
            return error.to_dict()
        except Exception as e:
            logger.exception(f"[{request_id}] Error handling tool {name}: {e}")
            error = classify_exception(e, device_id)
            error.request_id = request_id
            return error.to_dict()

        if isinstance(result, dict):
            if "error" in result:
                result.setdefault("request_id", request_id)
                logger.warning(f"[{request_id}] Tool {name} failed: {result['error']}")
            else:
                result["request_id"] = request_id
                logger.info(f"[{request_id}] Tool {name} completed successfully")
        return result

    async def _handle_tool(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """Route tool calls to appropriate handlers."""
        # Status tools
        if name == "get_system_status":
            return await self.query.get_system_status(args)
        elif name == "sync_locks":
            return await self.query.sync_locks(args)

        # Query tools
        elif name == "list_locks":
            return await self.query.list_locks(args)
        elif name == "get_lock_state":
            return await self.query.get_lock_state(args)

        # Lock tools
        elif name == "lock_door":
            return await self.locks.lock_door(args)
        elif name == "unlock_door":
            return await self.locks.unlock_door(args)
        elif name == "open_door":
            return await self.locks.open_door(args)
        elif name == "update_lock_settings":
            return await self.locks.update_lock_settings(args)

        return {"error": f"Unknown tool: {name}"}

    async def run(self) -> None:
        """Run the MCP server."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream, write_stream, self.server.create_initialization_options()
            )


def create_server(config: HubConfig, device_manager: DeviceManager) -> TedeeMcpServer:
    """Create a new Tedee Hub MCP server instance."""
    return TedeeMcpServer(config, device_manager)
