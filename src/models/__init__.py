"""Data models for Tedee Hub."""

from models.base import Device, DeviceStatus, DeviceType
from models.lock import (
    Lock,
    LockDetails,
    LockProperties,
    LockSettings,
    LockState,
    Operation,
    OperationType,
    UnlockMode,
)

__all__ = [
    "Device",
    "DeviceStatus",
    "DeviceType",
    "Lock",
    "LockDetails",
    "LockProperties",
    "LockSettings",
    "LockState",
    "Operation",
    "OperationType",
    "UnlockMode",
]
