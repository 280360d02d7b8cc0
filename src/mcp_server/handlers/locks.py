"""Lock control handlers for Tedee Hub."""

import asyncio
import logging
from typing import Any

from devices.manager import DeviceManager
from utils.errors import (
    DEFAULT_DEVICE_TIMEOUT,
    DeviceTimeoutError,
    ErrorCategory,
    ToolError,
    classify_exception,
    execute_with_timeout,
    get_recovery_suggestion,
)

logger = logging.getLogger(__name__)


class LockHandlers:
    """Handlers for lock control tools."""

    def __init__(self, device_manager: DeviceManager):
        self.device_manager = device_manager

    def _not_found(self, device_id: str) -> dict[str, Any]:
        return ToolError(
            category=ErrorCategory.DEVICE_NOT_FOUND,
            message=f"Lock not found: {device_id}",
            device_id=device_id,
            recovery=get_recovery_suggestion(ErrorCategory.DEVICE_NOT_FOUND),
        ).to_dict()

    async def _run_command(self, args: dict[str, Any], operation: str) -> dict[str, Any]:
        """Issue a lock command and optionally wait for the lock to settle.

        The command itself returns as soon as the vendor accepted it; with
        ``wait`` the response reflects the state after the monitor finished.
        """
        device_id = args["device_id"]
        wait = bool(args.get("wait", False))

        lock = self.device_manager.get_lock(device_id)
        if lock is None:
            return self._not_found(device_id)

        try:
            await execute_with_timeout(
                getattr(lock, operation)(),
                timeout=DEFAULT_DEVICE_TIMEOUT,
                device_id=device_id,
                operation=operation,
            )
            if wait:
                await lock.wait_until_idle()
        except (DeviceTimeoutError, asyncio.TimeoutError) as e:
            logger.error(f"Timeout during {operation} of {device_id}: {e}")
            return ToolError(
                category=ErrorCategory.TIMEOUT,
                message=f"Lock {device_id} did not respond",
                device_id=device_id,
                recovery=get_recovery_suggestion(ErrorCategory.TIMEOUT),
            ).to_dict()
        except Exception as e:
            logger.error(f"Failed to {operation} {device_id}: {e}")
            return classify_exception(e, device_id).to_dict()

        return {
            "success": True,
            "device_id": device_id,
            "operation": operation,
            "lock_state": lock.lock_state.label if lock.lock_state is not None else None,
            "locked": lock.get_capability_value("locked"),
            "busy": lock.is_busy,
            "device_status": lock.status.value,
        }

    async def lock_door(self, args: dict[str, Any]) -> dict[str, Any]:
        """Lock a door."""
        return await self._run_command(args, "lock")

    async def unlock_door(self, args: dict[str, Any]) -> dict[str, Any]:
        """Unlock a door."""
        return await self._run_command(args, "unlock")

    async def open_door(self, args: dict[str, Any]) -> dict[str, Any]:
        """Pull the spring of an unlocked door."""
        return await self._run_command(args, "open")

    async def update_lock_settings(self, args: dict[str, Any]) -> dict[str, Any]:
        """Change lock settings such as auto-lock or pull spring."""
        device_id = args["device_id"]
        changes = args.get("settings") or {}

        lock = self.device_manager.get_lock(device_id)
        if lock is None:
            return self._not_found(device_id)

        if not changes:
            return ToolError(
                category=ErrorCategory.INVALID_INPUT,
                message="No settings given",
                device_id=device_id,
                recovery=get_recovery_suggestion(ErrorCategory.INVALID_INPUT),
            ).to_dict()

        try:
            await execute_with_timeout(
                lock.update_settings(changes),
                timeout=DEFAULT_DEVICE_TIMEOUT,
                device_id=device_id,
                operation="update_settings",
            )
        except Exception as e:
            logger.error(f"Failed to update settings of {device_id}: {e}")
            return classify_exception(e, device_id).to_dict()

        return {
            "success": True,
            "device_id": device_id,
            "settings": dict(lock.settings),
            "pull_spring": lock.has_capability("open"),
        }
