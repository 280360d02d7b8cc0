"""Tedee lock implementation for Tedee Hub.

Commands are validated against the lock's current state before anything is
sent to the API. An accepted command hands its operation id to the device's
monitor, which follows the lock until it has settled.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from config import DeviceConfig, MonitorConfig
from devices.monitor import Monitor
from models.base import DeviceStatus, DeviceType
from models.lock import (
    BLOCKING_STATE_KEYS,
    SETTING_FIELDS,
    Lock,
    LockDetails,
    LockState,
    OperationType,
    UnlockMode,
    state_name,
)
from utils.errors import (
    DeviceBusyError,
    DeviceUnavailableError,
    PreconditionError,
    TedeeError,
)
from utils.i18n import translate

logger = logging.getLogger(__name__)

CAPABILITY_LOCKED = "locked"
CAPABILITY_OPEN = "open"
CAPABILITY_BATTERY = "measure_battery"
CAPABILITY_CHARGING = "charging"
CAPABILITY_CONNECTED = "connected"
CAPABILITY_UPDATE_AVAILABLE = "update_available"

TRIGGER_OPENED = "opened"
TRIGGER_PULLED = "pulled"

# Conditions hold when their capability is exactly True
CONDITIONS = (CAPABILITY_CONNECTED, CAPABILITY_CHARGING, CAPABILITY_UPDATE_AVAILABLE)


@dataclass
class TedeeLock(Lock):
    """Tedee lock controlled through the Tedee cloud API."""

    device_type: DeviceType = field(default=DeviceType.LOCK, init=False)
    tedee_id: int = 0
    monitor_config: MonitorConfig = field(default_factory=MonitorConfig, repr=False)
    _client: Any = field(default=None, repr=False)
    _monitor: Monitor | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        """Create default capabilities and the monitor."""
        super().__post_init__()
        for name in (
            CAPABILITY_LOCKED,
            CAPABILITY_BATTERY,
            CAPABILITY_CHARGING,
            CAPABILITY_CONNECTED,
            CAPABILITY_UPDATE_AVAILABLE,
        ):
            self.capabilities.setdefault(name, None)

        self._monitor = Monitor(
            self,
            self._client,
            poll_interval=self.monitor_config.poll_interval,
            operation_max_tries=self.monitor_config.operation_max_tries,
            state_max_tries=self.monitor_config.state_max_tries,
            cycle_timeout=self.monitor_config.cycle_timeout,
        )

    @property
    def monitor(self) -> Monitor:
        """The lock's monitor."""
        return self._monitor

    @property
    def is_busy(self) -> bool:
        """A command is being issued or the monitor is running."""
        return self._operation_lock.locked() or self._monitor.is_running

    # Commands

    async def lock(self) -> None:
        """Lock the door."""
        logger.info(f"[{self.id}] Locking")

        async with self._command():
            state = await self.get_state()

            if state == LockState.LOCKED:
                logger.info(f"[{self.id}] Lock is already locked")
                await self.reset()
                return

            if state not in (LockState.UNLOCKED, LockState.SEMI_LOCKED):
                raise PreconditionError(
                    "errors.notReadyToLock",
                    detail=f"Not ready to lock, currently {state_name(state)}",
                    device_id=self.id,
                )

            await self._submit(OperationType.CLOSE)

    async def unlock(self) -> None:
        """Unlock the door."""
        logger.info(f"[{self.id}] Unlocking")

        async with self._command():
            state = await self.get_state()

            if state == LockState.UNLOCKED:
                logger.info(f"[{self.id}] Lock is already unlocked")
                await self.reset()
                return

            if state not in (LockState.LOCKED, LockState.SEMI_LOCKED):
                raise PreconditionError(
                    "errors.notReadyToUnlock",
                    detail=f"Not ready to unlock, currently {state_name(state)}",
                    device_id=self.id,
                )

            await self._submit(OperationType.OPEN, UnlockMode.DEFAULT)

    async def open(self) -> None:
        """Pull the spring of an unlocked door."""
        logger.info(f"[{self.id}] Opening")

        async with self._command():
            if not self.has_capability(CAPABILITY_OPEN):
                raise PreconditionError(
                    "errors.pullSpringDisabled",
                    detail="Open capability not found",
                    device_id=self.id,
                )

            state = await self.get_state()

            if state != LockState.UNLOCKED:
                raise PreconditionError(
                    "errors.firstUnLock",
                    detail=f"Must unlock first, currently {state_name(state)}",
                    device_id=self.id,
                )

            await self._submit(OperationType.OPEN, UnlockMode.UNLOCK_OR_PULL_SPRING)

    @asynccontextmanager
    async def _command(self) -> AsyncIterator[None]:
        """Guard a command; any failure past the guards resets the lock."""
        self._ensure_ready()
        self._monitor.forget()

        async with self._operation_lock:
            try:
                yield
            except TedeeError:
                await self.reset()
                raise

    async def _submit(self, operation_type: OperationType, mode: UnlockMode | None = None) -> None:
        operation_id = await self._client.submit_command(self.tedee_id, operation_type, mode)
        self._monitor.start(operation_id)

    async def reset(self) -> None:
        """Return to an idle, externally consistent state.

        Clears the optimistic open flag and re-reads the lock from the API.
        """
        self.set_capability_value(CAPABILITY_OPEN, False)
        await self.refresh()

    async def get_state(self) -> LockState:
        """Fetch and log the current lock state."""
        state = await self._client.get_state(self.tedee_id)
        logger.info(f"[{self.id}] Current state is {state_name(state)} ({int(state)})")
        return state

    async def wait_until_idle(self) -> None:
        """Wait for a running monitor cycle to finish.

        Raises:
            MonitorError: If the cycle failed
        """
        await self._monitor.wait()

    def _ensure_ready(self) -> None:
        """Check availability, then that no other command is in flight."""
        if not self.available:
            raise DeviceUnavailableError(detail=self.unavailable_reason, device_id=self.id)

        if self.is_busy:
            raise DeviceBusyError(device_id=self.id)

    # Capability listeners

    async def on_capability_locked(self, value: bool) -> None:
        """Handle a toggle of the locked capability."""
        logger.info(f"[{self.id}] Capability 'locked' is now '{value}'")

        if value:
            await self.lock()
        else:
            await self.unlock()

    async def on_capability_open(self, value: bool) -> None:
        """Handle a toggle of the open capability."""
        logger.info(f"[{self.id}] Capability 'open' is now '{value}'")

        if value:
            await self.open()
            self.set_capability_value(CAPABILITY_OPEN, False)

    async def on_capability_update_available(self, value: bool) -> None:
        """Handle a change of the update_available capability."""
        self._set_flag(CAPABILITY_UPDATE_AVAILABLE, value)

    # Synchronization

    async def refresh(self) -> None:
        """Fetch current state from the Tedee cloud."""
        try:
            details = await self._client.get_lock_details(self.tedee_id)
        except TedeeError as e:
            logger.error(f"[{self.id}] Failed to refresh: {e.detail or e.message}")
            self.status = DeviceStatus.OFFLINE
            return

        self.apply_details(details)

    def apply_details(self, details: LockDetails) -> None:
        """Project a lock record onto capabilities, availability and settings."""
        if self.removed:
            return

        self.status = DeviceStatus.ONLINE

        if details.connected_to_id is not None:
            self.store["connected_via_bridge"] = bool(details.connected_to_id)

        if details.settings is not None:
            self.settings.update(details.settings.to_dict())
            if details.settings.pull_spring_enabled is not None:
                self.store["pull_spring_enabled"] = details.settings.pull_spring_enabled
                self._toggle_open_capability(details.settings.pull_spring_enabled)

        if details.is_connected is not None:
            self.settings["status"] = self._connection_status(details.is_connected)
            self._set_flag(CAPABILITY_CONNECTED, details.is_connected)

        if details.software_version is not None:
            self.settings["firmware"] = details.software_version
        if details.update_available is not None:
            self._set_flag(CAPABILITY_UPDATE_AVAILABLE, details.update_available)

        self._apply_availability(details)

        properties = details.lock_properties
        if properties.battery_level is not None:
            self.battery_percent = properties.battery_level
            self.set_capability_value(CAPABILITY_BATTERY, properties.battery_level)
        if properties.is_charging is not None:
            self._set_flag(CAPABILITY_CHARGING, properties.is_charging)

    def _set_flag(self, name: str, value: bool) -> None:
        """Set a boolean capability, logging changes from a known value."""
        current = self.get_capability_value(name)
        self.set_capability_value(name, value)
        if current is None or current == value:
            return
        logger.info(f"[{self.id}] '{name}' changed to {value}")

    def _apply_availability(self, details: LockDetails) -> None:
        if details.is_connected is False:
            if self.available:
                logger.info(f"[{self.id}] Disconnected")
            self.set_unavailable(translate("state.disconnected"))
            return

        state = details.state
        if state is None:
            return

        self.lock_state = state

        if state.is_blocking:
            self.set_unavailable(translate(BLOCKING_STATE_KEYS[state]))
            return

        self.set_available()
        self.set_capability_value(CAPABILITY_LOCKED, state == LockState.LOCKED)

    def _toggle_open_capability(self, pull_spring_enabled: bool) -> None:
        if self.has_capability(CAPABILITY_OPEN) and not pull_spring_enabled:
            logger.info(f"[{self.id}] Pull spring disabled, removing 'open' capability")
            self.remove_capability(CAPABILITY_OPEN)

        if not self.has_capability(CAPABILITY_OPEN) and pull_spring_enabled:
            logger.info(f"[{self.id}] Pull spring enabled, adding 'open' capability")
            self.add_capability(CAPABILITY_OPEN, False)

    def _connection_status(self, is_connected: bool) -> str:
        if not is_connected:
            return "Disconnected"
        if self.store.get("connected_via_bridge"):
            return "Connected via bridge"
        return "Connected"

    async def update_settings(self, changes: dict[str, Any]) -> None:
        """Push changed lock settings to the API and mirror them locally."""
        if not self.available:
            raise DeviceUnavailableError(detail=self.unavailable_reason, device_id=self.id)

        unknown = set(changes) - set(SETTING_FIELDS)
        if unknown:
            raise ValueError(f"Unknown lock settings: {', '.join(sorted(unknown))}")

        if "postponed_lock_delay" in changes and int(changes["postponed_lock_delay"]) < 0:
            raise ValueError("postponed_lock_delay must not be negative")

        payload = {}
        for name, value in changes.items():
            logger.info(f"[{self.id}] Setting '{name}' is now '{value}'")
            payload[SETTING_FIELDS[name]] = value

        if not payload:
            return

        await self._client.update_lock_settings(self.tedee_id, payload)

        for name, value in changes.items():
            if name == "pull_spring_enabled":
                self.store["pull_spring_enabled"] = value
                self._toggle_open_capability(bool(value))
            else:
                self.settings[name] = value

        logger.info(f"[{self.id}] Settings updated")

    # Triggers

    async def fire_opened(self) -> None:
        """Fire the opened trigger, only for locks with a pull spring."""
        if not self.has_capability(CAPABILITY_OPEN):
            return
        await self.trigger(TRIGGER_OPENED)

    async def track_state(self, details: LockDetails) -> None:
        """Remember the synced state and fire the pulled trigger on a change to Pulled.

        The first observed state only sets the baseline.
        """
        state = details.state
        if state is None or self.removed:
            return

        previous = self.store.get("state")
        if state == previous:
            return

        self.store["state"] = state
        if previous is None:
            return

        if state == LockState.PULLED:
            await self.trigger(TRIGGER_PULLED)

    def check_condition(self, name: str) -> bool:
        """Evaluate a named condition (connected, charging, update_available)."""
        if name not in CONDITIONS:
            raise ValueError(f"Unknown condition: {name}")
        return self.get_capability_value(name) is True

    async def close(self) -> None:
        """Stop the monitor and detach the lock."""
        await self._monitor.cancel()
        await super().close()

    def to_state_dict(self) -> dict[str, Any]:
        """Return current state as dict."""
        state = super().to_state_dict()
        state.update(
            {
                "locked": self.get_capability_value(CAPABILITY_LOCKED),
                "charging": self.get_capability_value(CAPABILITY_CHARGING),
                "pull_spring": self.has_capability(CAPABILITY_OPEN),
                "available": self.available,
                "unavailable_reason": self.unavailable_reason,
                "warning": self.warning,
                "update_available": self.get_capability_value(CAPABILITY_UPDATE_AVAILABLE),
                "conditions": {name: self.check_condition(name) for name in CONDITIONS},
                "busy": self.is_busy,
                "monitor": {
                    "phase": self._monitor.phase.value,
                    "mode": self._monitor.mode.value,
                    "try_count": self._monitor.try_count,
                },
                "settings": dict(self.settings),
            }
        )
        return state


async def create_tedee_lock(
    device_config: DeviceConfig,
    client: Any,
    monitor_config: MonitorConfig | None = None,
) -> TedeeLock:
    """Create a Tedee lock from config."""
    tedee_id = device_config.config.get("tedee_id")
    if tedee_id is None:
        raise ValueError(f"No tedee_id configured for lock {device_config.id}")

    lock = TedeeLock(
        id=device_config.id,
        name=device_config.name,
        room_id=device_config.room,
        tedee_id=int(tedee_id),
        monitor_config=monitor_config or MonitorConfig(),
        _client=client,
    )

    if device_config.config.get("pull_spring_enabled"):
        lock.add_capability(CAPABILITY_OPEN, False)

    await lock.refresh()
    logger.info(f"Created Tedee lock {lock.id} ({lock.tedee_id})")
    return lock
