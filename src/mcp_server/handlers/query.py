"""Query handlers for Tedee Hub."""

from typing import Any

from devices.manager import DeviceManager
from models import DeviceStatus
from utils.errors import ErrorCategory, ToolError, classify_exception, get_recovery_suggestion


class QueryHandlers:
    """Handlers for query tools."""

    def __init__(self, device_manager: DeviceManager):
        self.device_manager = device_manager

    async def list_locks(self, args: dict[str, Any]) -> dict[str, Any]:
        """List locks with optional filters."""
        room_id = args.get("room_id")
        locks = self.device_manager.get_locks(room_id=room_id)

        if args.get("available_only"):
            locks = [lock for lock in locks if lock.available]

        return {"locks": [self.device_manager.device_to_response(lock) for lock in locks]}

    async def get_lock_state(self, args: dict[str, Any]) -> dict[str, Any]:
        """Get detailed lock state.

        Idle locks are refreshed first; a lock with a running monitor is
        reported as the monitor last saw it.
        """
        device_id = args["device_id"]
        lock = self.device_manager.get_lock(device_id)
        if lock is None:
            return ToolError(
                category=ErrorCategory.DEVICE_NOT_FOUND,
                message=f"Lock not found: {device_id}",
                device_id=device_id,
                recovery=get_recovery_suggestion(ErrorCategory.DEVICE_NOT_FOUND),
            ).to_dict()

        if args.get("refresh", True) and not lock.is_busy:
            await lock.refresh()

        return self.device_manager.device_to_response(lock)

    async def sync_locks(self, args: dict[str, Any]) -> dict[str, Any]:
        """Synchronize all idle locks now."""
        try:
            results = await self.device_manager.sync_all()
        except Exception as e:
            return classify_exception(e).to_dict()
        return {"success": True, "results": results}

    async def get_system_status(self, args: dict[str, Any]) -> dict[str, Any]:
        """Get overall status with human-readable context."""
        locks = self.device_manager.get_locks()

        unavailable = [
            {"id": lock.id, "name": lock.name, "reason": lock.unavailable_reason}
            for lock in locks
            if not lock.available
        ]
        offline = [
            {"id": lock.id, "name": lock.name}
            for lock in locks
            if lock.status == DeviceStatus.OFFLINE
        ]
        busy = [lock.id for lock in locks if lock.is_busy]

        if not locks:
            status_text = "No locks configured"
            status_code = "empty"
        elif not unavailable and not offline:
            status_text = "All locks operational"
            status_code = "healthy"
        elif len(unavailable) + len(offline) < len(locks):
            status_text = f"{len(unavailable)} unavailable, {len(offline)} offline"
            status_code = "degraded"
        else:
            status_text = "No lock is operational"
            status_code = "critical"

        return {
            "status": status_code,
            "summary": status_text,
            "locks": {
                "total": len(locks),
                "available": len(locks) - len(unavailable),
                "busy": len(busy),
            },
            "unavailable_locks": unavailable,
            "offline_locks": offline,
            "busy_locks": busy,
            "sync": self.device_manager.get_summary()["sync"],
        }
