"""Lock device model and the Tedee lock state space."""

from abc import abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from models.base import Device, DeviceType
from utils.errors import ResponseError, UnknownStateError


class LockState(IntEnum):
    """Lock states as reported by the Tedee API."""

    UNCALIBRATED = 0
    CALIBRATING = 1
    UNLOCKED = 2
    SEMI_LOCKED = 3
    UNLOCKING = 4
    LOCKING = 5
    LOCKED = 6
    PULLED = 7
    PULLING = 8
    UNKNOWN = 9
    UPDATING = 18

    @property
    def label(self) -> str:
        """Canonical name, e.g. 'SemiLocked'."""
        return self.name.title().replace("_", "")

    @property
    def is_settling(self) -> bool:
        """Mechanical motion in progress, keep observing."""
        return self in SETTLING_STATES

    @property
    def is_blocking(self) -> bool:
        """The lock cannot be operated and must be shown unavailable."""
        return self in BLOCKING_STATES


SETTLING_STATES = frozenset(
    {LockState.LOCKING, LockState.UNLOCKING, LockState.PULLED, LockState.PULLING}
)

BLOCKING_STATES = frozenset(
    {LockState.UNCALIBRATED, LockState.CALIBRATING, LockState.UNKNOWN, LockState.UPDATING}
)

# Localized unavailability message per blocking state
BLOCKING_STATE_KEYS = {
    LockState.UNCALIBRATED: "state.uncalibrated",
    LockState.CALIBRATING: "state.calibrating",
    LockState.UNKNOWN: "state.unknown",
    LockState.UPDATING: "state.updating",
}


def state_name(state_id: Any) -> str:
    """Name of a state id for logging, never raises."""
    try:
        return LockState(state_id).label
    except ValueError:
        return f"Unrecognized({state_id})"


def is_settling(state_id: Any) -> bool:
    """Whether a state id requires continued observation."""
    return state_id in SETTLING_STATES


def is_blocking(state_id: Any) -> bool:
    """Whether a state id makes the device unavailable."""
    return state_id in BLOCKING_STATES


def parse_lock_state(value: Any) -> LockState:
    """Parse a state id from the API.

    Raises:
        UnknownStateError: If the value is absent or not a known state
    """
    if value is None or isinstance(value, bool):
        raise UnknownStateError(value)
    try:
        return LockState(int(value))
    except (TypeError, ValueError):
        raise UnknownStateError(value)


class OperationType(Enum):
    """Type of a lock command, independent of the lock state."""

    CLOSE = "LOCK_CLOSE"
    OPEN = "LOCK_OPEN"
    PULL = "LOCK_PULL_SPRING"


class UnlockMode(IntEnum):
    """Parameter of an unlock (open) command."""

    DEFAULT = 0
    FORCE_UNLOCK = 1
    NO_AUTO_PULL_SPRING = 2
    UNLOCK_OR_PULL_SPRING = 3


OPERATION_PENDING = "PENDING"


@dataclass
class Operation:
    """A vendor-side command record."""

    operation_id: str
    status: str
    result: int | None = None
    type: OperationType | None = None

    @property
    def is_pending(self) -> bool:
        """Whether the vendor is still executing the command."""
        return self.status == OPERATION_PENDING

    @property
    def succeeded(self) -> bool:
        """Whether the command completed successfully."""
        return self.result == 0

    @classmethod
    def from_api(cls, data: Any) -> "Operation":
        """Create an operation from an API result."""
        if not isinstance(data, dict) or not data.get("operationId"):
            raise ResponseError(f"Malformed operation: {data!r}")

        result = data.get("result")
        try:
            result = int(result) if result is not None else None
        except (TypeError, ValueError):
            raise ResponseError(f"Malformed operation result: {result!r}")

        op_type = None
        if data.get("type") in {t.value for t in OperationType}:
            op_type = OperationType(data["type"])

        return cls(
            operation_id=str(data["operationId"]),
            status=str(data.get("status", "")),
            result=result,
            type=op_type,
        )


@dataclass
class LockProperties:
    """Live properties of a lock."""

    state: LockState | None = None
    battery_level: int | None = None
    is_charging: bool | None = None

    @classmethod
    def from_api(cls, data: Any) -> "LockProperties":
        """Create lock properties from an API result.

        An absent state stays None; an unrecognized one raises.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ResponseError(f"Malformed lock properties: {data!r}")

        state = None
        if data.get("state") is not None:
            state = parse_lock_state(data["state"])

        return cls(
            state=state,
            battery_level=data.get("batteryLevel"),
            is_charging=data.get("isCharging"),
        )


# Local setting name -> Tedee deviceSettings field
SETTING_FIELDS = {
    "auto_lock_enabled": "autoLockEnabled",
    "button_lock_enabled": "buttonLockEnabled",
    "button_unlock_enabled": "buttonUnlockEnabled",
    "postponed_lock_enabled": "postponedLockEnabled",
    "postponed_lock_delay": "postponedLockDelay",
    "pull_spring_enabled": "pullSpringEnabled",
}


@dataclass
class LockSettings:
    """User-configurable lock settings mirrored from the API."""

    auto_lock_enabled: bool = False
    button_lock_enabled: bool = False
    button_unlock_enabled: bool = False
    postponed_lock_enabled: bool = False
    postponed_lock_delay: int = 10
    pull_spring_enabled: bool | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LockSettings":
        """Create settings from a Tedee deviceSettings object."""
        return cls(
            auto_lock_enabled=bool(data.get("autoLockEnabled") or False),
            button_lock_enabled=bool(data.get("buttonLockEnabled") or False),
            button_unlock_enabled=bool(data.get("buttonUnlockEnabled") or False),
            postponed_lock_enabled=bool(data.get("postponedLockEnabled") or False),
            postponed_lock_delay=int(data.get("postponedLockDelay") or 10),
            pull_spring_enabled=data.get("pullSpringEnabled"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return mirrored settings, without the pull spring flag."""
        return {
            "auto_lock_enabled": self.auto_lock_enabled,
            "button_lock_enabled": self.button_lock_enabled,
            "button_unlock_enabled": self.button_unlock_enabled,
            "postponed_lock_enabled": self.postponed_lock_enabled,
            "postponed_lock_delay": self.postponed_lock_delay,
        }


@dataclass
class LockDetails:
    """A lock record as returned by the lock and sync endpoints."""

    id: int
    is_connected: bool | None = None
    lock_properties: LockProperties = field(default_factory=LockProperties)
    name: str | None = None
    serial_number: str | None = None
    settings: LockSettings | None = None
    revision: int | None = None
    connected_to_id: int | None = None
    software_version: str | None = None
    update_available: bool | None = None

    @property
    def state(self) -> LockState | None:
        """Shortcut to the reported lock state."""
        return self.lock_properties.state

    @classmethod
    def from_api(cls, data: Any) -> "LockDetails":
        """Create lock details from an API result."""
        if not isinstance(data, dict) or "id" not in data:
            raise ResponseError(f"Malformed lock details: {data!r}")

        settings = None
        if isinstance(data.get("deviceSettings"), dict):
            settings = LockSettings.from_api(data["deviceSettings"])

        software_version = None
        update_available = None
        versions = data.get("softwareVersions")
        if isinstance(versions, list) and versions and isinstance(versions[0], dict):
            if versions[0].get("version") is not None:
                software_version = str(versions[0]["version"])
            update_available = versions[0].get("updateAvailable")

        return cls(
            id=int(data["id"]),
            is_connected=data.get("isConnected"),
            lock_properties=LockProperties.from_api(data.get("lockProperties")),
            name=data.get("name"),
            serial_number=data.get("serialNumber"),
            settings=settings,
            revision=data.get("revision"),
            connected_to_id=data.get("connectedToId"),
            software_version=software_version,
            update_available=update_available,
        )


@dataclass
class Lock(Device):
    """Base class for lock devices."""

    device_type: DeviceType = field(default=DeviceType.LOCK, init=False)
    lock_state: LockState | None = None
    battery_percent: int | None = None

    @abstractmethod
    async def lock(self) -> None:
        """Lock the door."""
        pass

    @abstractmethod
    async def unlock(self) -> None:
        """Unlock the door."""
        pass

    @abstractmethod
    async def open(self) -> None:
        """Pull the spring to open the door."""
        pass

    def to_state_dict(self) -> dict[str, Any]:
        """Return current state as dict."""
        return {
            "lock_state": self.lock_state.label if self.lock_state is not None else None,
            "battery_percent": self.battery_percent,
        }
