"""MCP tool definitions for Tedee Hub.

Tools are organized by category: status, query, locks.
"""

from mcp.types import Tool

TOOL_CATEGORIES = {
    "status": {
        "name": "Status",
        "description": "Tools for checking overall hub health",
        "tags": ["status", "system", "health"],
        "tools": ["get_system_status", "sync_locks"],
    },
    "query": {
        "name": "Query",
        "description": "Tools for querying lock state",
        "tags": ["query", "list", "get", "state", "locks"],
        "tools": ["list_locks", "get_lock_state"],
    },
    "locks": {
        "name": "Door Locks",
        "description": "Tools for controlling door locks (security-sensitive)",
        "tags": ["locks", "doors", "security", "lock", "unlock", "open", "pull spring"],
        "tools": ["lock_door", "unlock_door", "open_door", "update_lock_settings"],
    },
}


def _add_examples(schema: dict, examples: list[dict]) -> dict:
    """Add input examples to a tool schema."""
    schema["examples"] = examples
    return schema


def _command_schema(examples: list[dict]) -> dict:
    return _add_examples(
        {
            "type": "object",
            "properties": {
                "device_id": {
                    "type": "string",
                    "description": "Lock device ID",
                },
                "wait": {
                    "type": "boolean",
                    "description": "Wait until the lock has settled before returning",
                    "default": False,
                },
            },
            "required": ["device_id"],
        },
        examples,
    )


def get_status_tools() -> list[Tool]:
    """Get status tool definitions."""
    return [
        Tool(
            name="get_system_status",
            description=(
                "Get overall hub status. "
                "Returns lock availability, locks with a command in progress, "
                "and the last synchronization with the Tedee cloud."
            ),
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="sync_locks",
            description=(
                "Synchronize all idle locks with the Tedee cloud now. "
                "Locks with a command in progress are skipped."
            ),
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
    ]


def get_query_tools() -> list[Tool]:
    """Get query tool definitions with input examples."""
    return [
        Tool(
            name="list_locks",
            description="List all locks with their state, battery and availability.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "room_id": {
                            "type": "string",
                            "description": "Filter by room",
                        },
                        "available_only": {
                            "type": "boolean",
                            "description": "Only return available locks",
                        },
                    },
                },
                [
                    {},
                    {"room_id": "hallway"},
                    {"available_only": True},
                ],
            ),
        ),
        Tool(
            name="get_lock_state",
            description=(
                "Get the detailed state of a lock: lock state, battery, charging, "
                "availability and whether a command is in progress."
            ),
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "device_id": {
                            "type": "string",
                            "description": "Lock device ID",
                        },
                        "refresh": {
                            "type": "boolean",
                            "description": "Fetch fresh state from the Tedee cloud first",
                            "default": True,
                        },
                    },
                    "required": ["device_id"],
                },
                [
                    {"device_id": "front_door"},
                    {"device_id": "front_door", "refresh": False},
                ],
            ),
        ),
    ]


def get_lock_tools() -> list[Tool]:
    """Get lock control tool definitions with input examples."""
    return [
        Tool(
            name="lock_door",
            description="Lock a door. Does nothing if the door is already locked.",
            inputSchema=_command_schema(
                [
                    {"device_id": "front_door"},
                    {"device_id": "front_door", "wait": True},
                ]
            ),
        ),
        Tool(
            name="unlock_door",
            description=(
                "Unlock a door. SECURITY SENSITIVE. "
                "Does nothing if the door is already unlocked."
            ),
            inputSchema=_command_schema(
                [
                    {"device_id": "front_door"},
                ]
            ),
        ),
        Tool(
            name="open_door",
            description=(
                "Pull the spring to open a door. SECURITY SENSITIVE. "
                "The lock must be unlocked first and have pull spring enabled."
            ),
            inputSchema=_command_schema(
                [
                    {"device_id": "front_door"},
                    {"device_id": "front_door", "wait": True},
                ]
            ),
        ),
        Tool(
            name="update_lock_settings",
            description="Change lock settings such as auto-lock, button control or pull spring.",
            inputSchema=_add_examples(
                {
                    "type": "object",
                    "properties": {
                        "device_id": {
                            "type": "string",
                            "description": "Lock device ID",
                        },
                        "settings": {
                            "type": "object",
                            "properties": {
                                "auto_lock_enabled": {"type": "boolean"},
                                "button_lock_enabled": {"type": "boolean"},
                                "button_unlock_enabled": {"type": "boolean"},
                                "postponed_lock_enabled": {"type": "boolean"},
                                "postponed_lock_delay": {"type": "integer", "minimum": 0},
                                "pull_spring_enabled": {"type": "boolean"},
                            },
                            "additionalProperties": False,
                        },
                    },
                    "required": ["device_id", "settings"],
                },
                [
                    {"device_id": "front_door", "settings": {"auto_lock_enabled": True}},
                    {"device_id": "front_door", "settings": {"pull_spring_enabled": False}},
                ],
            ),
        ),
    ]


def get_all_tools() -> list[Tool]:
    """Get all tool definitions."""
    return get_status_tools() + get_query_tools() + get_lock_tools()
