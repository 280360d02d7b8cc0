"""Pytest configuration and fixtures for Tedee Hub tests."""

import sys
from pathlib import Path
from typing import Any

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import DeviceConfig, HubConfig, MonitorConfig, SecretsConfig, SyncConfig
from devices.manager import DeviceManager
from devices.tedee import TedeeLock, create_tedee_lock
from models.base import DeviceStatus
from models.lock import (
    LockDetails,
    LockProperties,
    LockSettings,
    LockState,
    Operation,
    OperationType,
    UnlockMode,
)
from utils.i18n import set_language


def make_details(
    tedee_id: int = 1,
    state: LockState | None = LockState.UNLOCKED,
    is_connected: bool | None = True,
    battery_level: int | None = 80,
    is_charging: bool | None = False,
    pull_spring_enabled: bool | None = None,
    connected_to_id: int | None = None,
    software_version: str | None = None,
    update_available: bool | None = None,
) -> LockDetails:
    """Build a lock record as the sync endpoint would return it."""
    settings = None
    if pull_spring_enabled is not None:
        settings = LockSettings(pull_spring_enabled=pull_spring_enabled)
    return LockDetails(
        id=tedee_id,
        is_connected=is_connected,
        lock_properties=LockProperties(
            state=state,
            battery_level=battery_level,
            is_charging=is_charging,
        ),
        settings=settings,
        connected_to_id=connected_to_id,
        software_version=software_version,
        update_available=update_available,
    )


def pending(operation_id: str = "op-1") -> Operation:
    return Operation(operation_id=operation_id, status="PENDING")


def completed(operation_id: str = "op-1", result: int = 0) -> Operation:
    return Operation(operation_id=operation_id, status="COMPLETED", result=result)


class FakeTedeeClient:
    """In-memory stand-in for TedeeClient.

    ``states`` is the reported state per lock. ``operations`` and ``details``
    are scripts consumed one item per call; an item that is an exception is
    raised instead of returned. Once a script is empty the client reports a
    completed operation and the current state.
    """

    def __init__(self, states: dict[int, LockState] | None = None):
        self.states: dict[int, LockState] = dict(states or {1: LockState.UNLOCKED})
        self.connected: dict[int, bool] = {}
        self.operations: list[Any] = []
        self.details: list[Any] = []
        self.state_errors: list[Exception] = []
        self.command_errors: list[Exception] = []
        self.commands: list[tuple[int, OperationType, UnlockMode | None]] = []
        self.settings_updates: list[tuple[int, dict[str, Any]]] = []
        self.calls: dict[str, int] = {
            "get_state": 0,
            "get_operation": 0,
            "get_lock_details": 0,
            "get_locks_sync": 0,
        }
        self.closed = False

    def _details_for(self, device_id: int) -> LockDetails:
        return make_details(
            tedee_id=device_id,
            state=self.states.get(device_id),
            is_connected=self.connected.get(device_id, True),
        )

    async def get_state(self, device_id: int) -> LockState:
        self.calls["get_state"] += 1
        if self.state_errors:
            raise self.state_errors.pop(0)
        return self.states[device_id]

    async def get_operation(self, operation_id: str) -> Operation:
        self.calls["get_operation"] += 1
        if self.operations:
            item = self.operations.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return completed(operation_id)

    async def get_lock_details(self, device_id: int) -> LockDetails:
        self.calls["get_lock_details"] += 1
        if self.details:
            item = self.details.pop(0)
            if isinstance(item, Exception):
                raise item
            if isinstance(item, LockState):
                self.states[device_id] = item
                return self._details_for(device_id)
            return item
        return self._details_for(device_id)

    async def get_locks(self) -> list[LockDetails]:
        return [self._details_for(device_id) for device_id in self.states]

    async def get_locks_sync(self) -> list[LockDetails]:
        self.calls["get_locks_sync"] += 1
        return [self._details_for(device_id) for device_id in self.states]

    async def submit_command(
        self,
        device_id: int,
        operation_type: OperationType,
        mode: UnlockMode | None = None,
    ) -> str:
        if self.command_errors:
            raise self.command_errors.pop(0)
        self.commands.append((device_id, operation_type, mode))
        return f"op-{len(self.commands)}"

    async def update_lock_settings(self, device_id: int, device_settings: dict[str, Any]) -> None:
        self.settings_updates.append((device_id, device_settings))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def english():
    """Run every test with English messages."""
    set_language("en")
    yield
    set_language("en")


@pytest.fixture
def monitor_config() -> MonitorConfig:
    """Monitor settings without inter-poll delay."""
    return MonitorConfig(poll_interval=0, cycle_timeout=5.0)


@pytest.fixture
def fake_client() -> FakeTedeeClient:
    """Create a fake Tedee client with one unlocked lock."""
    return FakeTedeeClient()


@pytest.fixture
def tedee_lock(fake_client: FakeTedeeClient, monitor_config: MonitorConfig) -> TedeeLock:
    """Create an available Tedee lock without pull spring."""
    lock = TedeeLock(
        id="front_door",
        name="Front Door",
        room_id="hallway",
        tedee_id=1,
        monitor_config=monitor_config,
        _client=fake_client,
    )
    lock.status = DeviceStatus.ONLINE
    lock.lock_state = LockState.UNLOCKED
    lock.capabilities["locked"] = False
    return lock


@pytest.fixture
def pull_spring_lock(tedee_lock: TedeeLock) -> TedeeLock:
    """Create an available Tedee lock with the open capability."""
    tedee_lock.add_capability("open", False)
    return tedee_lock


@pytest.fixture
def sample_config(monitor_config: MonitorConfig) -> HubConfig:
    """Create a sample configuration for testing."""
    return HubConfig(
        devices=[
            DeviceConfig(
                id="front_door",
                name="Front Door",
                room="hallway",
                config={"tedee_id": 1, "pull_spring_enabled": True},
            ),
            DeviceConfig(
                id="back_door",
                name="Back Door",
                room="garden",
                config={"tedee_id": 2},
            ),
        ],
        monitor=monitor_config,
        sync=SyncConfig(enabled=False),
    )


@pytest.fixture
def sample_secrets() -> SecretsConfig:
    """Create a sample secrets configuration for testing."""
    return SecretsConfig(tedee={"personal_key": "test_key"})


@pytest.fixture
async def device_manager(
    sample_config: HubConfig,
    sample_secrets: SecretsConfig,
) -> DeviceManager:
    """Create a device manager with two locks on a fake client."""
    client = FakeTedeeClient({1: LockState.UNLOCKED, 2: LockState.LOCKED})
    manager = DeviceManager(sample_config, sample_secrets, client=client)
    manager.register_device_factory("tedee", create_tedee_lock)

    await manager.initialize()
    yield manager
    await manager.shutdown()
