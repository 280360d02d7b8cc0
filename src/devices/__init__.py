"""Device implementations for Tedee Hub."""

from devices.manager import DeviceManager
from devices.monitor import Monitor, MonitorMode, MonitorPhase
from devices.sync import LockSynchronizer
from devices.tedee import TedeeLock, create_tedee_lock

__all__ = [
    "DeviceManager",
    "LockSynchronizer",
    "Monitor",
    "MonitorMode",
    "MonitorPhase",
    "TedeeLock",
    "create_tedee_lock",
]

# Device type to factory mapping
DEVICE_FACTORIES = {
    "tedee": create_tedee_lock,
}


def register_all_factories(manager: DeviceManager) -> None:
    """Register all device factories with a device manager."""
    for device_type, factory in DEVICE_FACTORIES.items():
        manager.register_device_factory(device_type, factory)
