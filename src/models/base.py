"""Base device models for Tedee Hub."""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class DeviceType(Enum):
    """Types of supported devices."""

    LOCK = "lock"


class DeviceStatus(Enum):
    """Device connection status."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass
class Device(ABC):
    """Base class for all devices.

    Provides:
    - Common device attributes (id, name, type, status)
    - Capability values and availability as seen by the hub
    - Trigger listeners for one-shot device events
    - Operation lock for serialized commands
    """

    id: str
    name: str
    device_type: DeviceType
    room_id: str | None = None
    status: DeviceStatus = DeviceStatus.UNKNOWN
    available: bool = True
    unavailable_reason: str | None = None
    warning: str | None = None
    capabilities: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)
    store: dict[str, Any] = field(default_factory=dict)
    removed: bool = False
    _operation_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _trigger_listeners: dict[str, list[Callable[..., Any]]] = field(
        default_factory=dict, repr=False
    )

    def __post_init__(self) -> None:
        """Initialize after dataclass __init__."""
        # Ensure lock is created (for subclasses that override __post_init__)
        if not hasattr(self, "_operation_lock") or self._operation_lock is None:
            self._operation_lock = asyncio.Lock()

    @abstractmethod
    async def refresh(self) -> None:
        """Fetch current state from device."""
        pass

    @abstractmethod
    def to_state_dict(self) -> dict[str, Any]:
        """Return current state as dict for MCP responses."""
        pass

    async def close(self) -> None:
        """Release resources and detach the device from the hub.

        Subclasses should extend this to stop background work.
        """
        self.removed = True

    # Capabilities

    def has_capability(self, name: str) -> bool:
        """Return whether the device exposes a capability."""
        return name in self.capabilities

    def get_capability_value(self, name: str) -> Any:
        """Get a capability value, None when absent or unset."""
        return self.capabilities.get(name)

    def add_capability(self, name: str, value: Any = None) -> None:
        """Expose a new capability."""
        if self.removed or name in self.capabilities:
            return
        self.capabilities[name] = value
        logger.info(f"[{self.id}] Added capability '{name}'")

    def remove_capability(self, name: str) -> None:
        """Stop exposing a capability."""
        if self.removed or name not in self.capabilities:
            return
        del self.capabilities[name]
        logger.info(f"[{self.id}] Removed capability '{name}'")

    def set_capability_value(self, name: str, value: Any) -> None:
        """Set a capability value.

        Writes to removed devices and to capabilities the device does not
        expose are ignored.
        """
        if self.removed:
            logger.debug(f"[{self.id}] Ignoring '{name}' update on removed device")
            return
        if name not in self.capabilities:
            return
        if self.capabilities[name] != value:
            logger.debug(f"[{self.id}] Capability '{name}' is now '{value}'")
        self.capabilities[name] = value

    # Availability

    def set_available(self) -> None:
        """Mark the device available."""
        if self.removed:
            return
        if not self.available:
            logger.info(f"[{self.id}] Device is available")
        self.available = True
        self.unavailable_reason = None

    def set_unavailable(self, reason: str) -> None:
        """Mark the device unavailable with a user-facing reason."""
        if self.removed:
            return
        if self.available:
            logger.info(f"[{self.id}] Device is unavailable: {reason}")
        self.available = False
        self.unavailable_reason = reason

    def set_warning(self, message: str) -> None:
        """Show a user-facing warning while the device stays usable."""
        if self.removed:
            return
        logger.warning(f"[{self.id}] {message}")
        self.warning = message

    def unset_warning(self) -> None:
        """Clear the warning."""
        if self.removed:
            return
        self.warning = None

    # Triggers

    def register_trigger(self, name: str, listener: Callable[..., Any]) -> None:
        """Register a listener invoked when the named trigger fires.

        Listeners receive the device and a dict of tokens; they may be plain
        functions or coroutine functions.
        """
        self._trigger_listeners.setdefault(name, []).append(listener)

    async def trigger(self, name: str, tokens: dict[str, Any] | None = None) -> None:
        """Fire a trigger, invoking every registered listener.

        Listener failures are logged and do not propagate.
        """
        if self.removed:
            return

        logger.info(f"[{self.id}] Trigger '{name}'")
        for listener in self._trigger_listeners.get(name, []):
            try:
                result = listener(self, tokens or {})
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"[{self.id}] Trigger '{name}' listener failed: {e}")
