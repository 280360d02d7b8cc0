"""Device manager for Tedee Hub."""

import logging
from typing import Any

from client import create_client
from config import DeviceConfig, HubConfig, SecretsConfig
from devices.sync import LockSynchronizer
from models import Device, DeviceStatus, DeviceType, Lock
from utils.i18n import set_language

logger = logging.getLogger(__name__)


class DeviceManager:
    """Manages all locks and the client they share."""

    def __init__(
        self,
        config: HubConfig,
        secrets: SecretsConfig,
        client: Any = None,
    ):
        self.config = config
        self.secrets = secrets
        self._client = client
        self._devices: dict[str, Device] = {}
        self._device_factories: dict[str, Any] = {}
        self._synchronizer: LockSynchronizer | None = None

    @property
    def client(self) -> Any:
        """The Tedee API client, created on initialize()."""
        return self._client

    @property
    def synchronizer(self) -> LockSynchronizer | None:
        """The periodic synchronizer, if sync is enabled."""
        return self._synchronizer

    def register_device_factory(self, device_type: str, factory: Any) -> None:
        """Register a factory function for creating devices of a given type.

        The factory should be an async callable that takes
        (device_config, client, monitor_config) and returns a Device.
        """
        self._device_factories[device_type] = factory

    async def initialize(self) -> None:
        """Create the client and all devices from config, then start syncing."""
        set_language(self.config.house.language)

        if self._client is None:
            self._client = create_client(self.secrets)

        for device_config in self.config.devices:
            await self._create_device(device_config)

        self._synchronizer = LockSynchronizer(
            self._client,
            self.get_locks,
            interval=self.config.sync.interval,
        )
        if self.config.sync.enabled:
            await self._synchronizer.start()

    async def shutdown(self) -> None:
        """Gracefully shutdown, stopping monitors and closing the client."""
        if self._synchronizer:
            await self._synchronizer.stop()

        for device in list(self._devices.values()):
            try:
                await device.close()
                logger.debug(f"Closed device: {device.id}")
            except Exception as e:
                logger.warning(f"Error closing device {device.id}: {e}")

        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()

    async def _create_device(self, device_config: DeviceConfig) -> Device | None:
        """Create a device from config."""
        factory = self._device_factories.get(device_config.type)
        if factory is None:
            logger.warning(f"No factory registered for device type: {device_config.type}")
            return None

        if device_config.id in self._devices:
            logger.warning(f"Duplicate device id {device_config.id}, skipping")
            return None

        try:
            device = await factory(device_config, self._client, self.config.monitor)
            self._devices[device.id] = device
            logger.info(f"Created device: {device.name} ({device_config.type})")
            return device
        except Exception as e:
            logger.error(f"Failed to create device {device_config.id}: {e}")
            return None

    async def remove_device(self, device_id: str) -> bool:
        """Detach a device, cancelling its monitor."""
        device = self._devices.pop(device_id, None)
        if device is None:
            return False

        await device.close()
        logger.info(f"Removed device: {device_id}")
        return True

    async def sync_all(self) -> dict[str, str]:
        """Run one synchronization round now."""
        if self._synchronizer is None:
            self._synchronizer = LockSynchronizer(
                self._client, self.get_locks, interval=self.config.sync.interval
            )
        return await self._synchronizer.sync_once()

    # Device getters
    def get_device(self, device_id: str) -> Device | None:
        """Get a device by ID."""
        return self._devices.get(device_id)

    def get_devices(
        self,
        device_type: DeviceType | None = None,
        room_id: str | None = None,
        status: DeviceStatus | None = None,
    ) -> list[Device]:
        """Get devices with optional filters."""
        devices = list(self._devices.values())

        if device_type is not None:
            devices = [d for d in devices if d.device_type == device_type]

        if room_id is not None:
            devices = [d for d in devices if d.room_id == room_id]

        if status is not None:
            devices = [d for d in devices if d.status == status]

        return devices

    def get_lock(self, device_id: str) -> Lock | None:
        """Get a lock by ID."""
        device = self._devices.get(device_id)
        return device if isinstance(device, Lock) else None

    def get_locks(self, room_id: str | None = None) -> list[Lock]:
        """Get all locks, optionally filtered by room."""
        devices = self.get_devices(device_type=DeviceType.LOCK, room_id=room_id)
        return [d for d in devices if isinstance(d, Lock)]

    # Device state as dicts for MCP responses
    def device_to_response(self, device: Device) -> dict[str, Any]:
        """Convert a device to a response dict."""
        return {
            "id": device.id,
            "name": device.name,
            "type": device.device_type.value,
            "status": device.status.value,
            "room_id": device.room_id,
            "state": device.to_state_dict(),
        }

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of devices and sync status."""
        locks = self.get_locks()
        return {
            "total_locks": len(locks),
            "available_locks": sum(1 for lock in locks if lock.available),
            "busy_locks": sum(1 for lock in locks if getattr(lock, "is_busy", False)),
            "sync": self._synchronizer.get_summary() if self._synchronizer else None,
        }
