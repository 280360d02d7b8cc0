"""Operation and state monitor for locks.

After a command is accepted the vendor only reports an operation record; the
lock itself may still be moving when that record completes. The monitor polls
the operation until it succeeds, then keeps polling the lock state until the
lock has settled, applying every observed state to the device on the way.

The monitor is a small explicit state machine::

    Idle --run(op)--> PollingOperation --success--> PollingState --settled--> Idle
    Idle --run()----> PollingState

Every failure (transport error, failed operation, exhausted tries, cycle
timeout) resets it to Idle before the error is raised.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from models.lock import LockDetails, LockState, state_name
from utils.errors import (
    MonitorError,
    MonitorTimeoutError,
    OperationFailedError,
    TooManyTriesError,
    UnknownStateError,
)

if TYPE_CHECKING:
    from devices.tedee import TedeeLock

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.9
DEFAULT_OPERATION_MAX_TRIES = 5
DEFAULT_STATE_MAX_TRIES = 6
DEFAULT_CYCLE_TIMEOUT = 15.0


class MonitorPhase(Enum):
    """Lifecycle of a monitor."""

    READY = "ready"
    RUNNING = "running"


class MonitorMode(Enum):
    """Polling strategy of a running monitor."""

    STATE = "State"
    OPERATION = "Operation"


@dataclass(frozen=True)
class Idle:
    """Not polling."""


@dataclass(frozen=True)
class PollingOperation:
    """Polling a submitted command's operation record."""

    operation_id: str
    tries: int = 0


@dataclass(frozen=True)
class PollingState:
    """Polling the lock state until it settles."""

    tries: int = 0


MonitorState = Idle | PollingOperation | PollingState


class Monitor:
    """Per-device polling state machine.

    Owned by a single device for its whole lifetime. At most one cycle runs at
    a time; ``run()`` on a running monitor is a no-op.
    """

    def __init__(
        self,
        device: "TedeeLock",
        client: Any,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        operation_max_tries: int = DEFAULT_OPERATION_MAX_TRIES,
        state_max_tries: int = DEFAULT_STATE_MAX_TRIES,
        cycle_timeout: float = DEFAULT_CYCLE_TIMEOUT,
    ):
        self.device = device
        self.client = client
        self.poll_interval = poll_interval
        self.operation_max_tries = operation_max_tries
        self.state_max_tries = state_max_tries
        self.cycle_timeout = cycle_timeout

        self._state: MonitorState = Idle()
        self._open_triggered = False
        self._task: asyncio.Task | None = None

    # Views

    @property
    def state(self) -> MonitorState:
        """Current state machine node."""
        return self._state

    @property
    def phase(self) -> MonitorPhase:
        """Whether a cycle is running."""
        if isinstance(self._state, Idle):
            return MonitorPhase.READY
        return MonitorPhase.RUNNING

    @property
    def is_running(self) -> bool:
        """Return whether the monitor is running."""
        return self.phase == MonitorPhase.RUNNING

    @property
    def mode(self) -> MonitorMode:
        """Active polling strategy, State while idle."""
        if isinstance(self._state, PollingOperation):
            return MonitorMode.OPERATION
        return MonitorMode.STATE

    @property
    def operation_id(self) -> str | None:
        """Tracked operation, only set in Operation mode."""
        if isinstance(self._state, PollingOperation):
            return self._state.operation_id
        return None

    @property
    def try_count(self) -> int:
        """Attempts since the last mode switch."""
        if isinstance(self._state, (PollingOperation, PollingState)):
            return self._state.tries
        return 0

    @property
    def open_triggered(self) -> bool:
        """Whether the opened trigger fired in this cycle."""
        return self._open_triggered

    @property
    def task(self) -> asyncio.Task | None:
        """Background task of the current or last started cycle."""
        return self._task

    # Actions

    def reset(self) -> None:
        """Stop polling and return to idle."""
        if self.is_running:
            self._log("Stopped")
        self._state = Idle()
        self._open_triggered = False

    async def run(self, operation_id: str | None = None) -> None:
        """Run a monitor cycle until the lock settles.

        Args:
            operation_id: Operation to track first, or None to only watch state

        Raises:
            MonitorError: If the cycle failed; the monitor is idle again
        """
        if self.is_running:
            self._log("Already running")
            return

        self._begin(operation_id)
        await self._poll()

    def start(self, operation_id: str | None = None) -> asyncio.Task | None:
        """Run a monitor cycle in the background.

        Failures of the background cycle are logged and shown as the device
        warning; wait() re-raises them.

        Returns:
            The cycle task, or None if a cycle was already running
        """
        if self.is_running:
            self._log("Already running")
            return None

        self._begin(operation_id)
        self._task = asyncio.create_task(self._poll(), name=f"monitor-{self.device.id}")
        self._task.add_done_callback(self._on_task_done)
        return self._task

    async def wait(self) -> None:
        """Wait for the background cycle to finish.

        The outcome of a cycle is reported once; later calls return
        immediately.

        Raises:
            MonitorError: If the cycle failed
        """
        task = self._task
        if task is None:
            return

        await asyncio.wait({task})
        if self._task is task:
            self._task = None
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()

    def forget(self) -> None:
        """Drop a finished cycle whose outcome nobody waited for."""
        if self._task is not None and self._task.done():
            self._task = None

    async def cancel(self) -> None:
        """Cancel a background cycle and reset."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except MonitorError:
                pass
        self.reset()

    # Polling

    def _begin(self, operation_id: str | None) -> None:
        if operation_id:
            self._state = PollingOperation(operation_id)
        else:
            self._state = PollingState()
        self._open_triggered = False
        self.device.unset_warning()
        self._log("Running...")

    async def _poll(self) -> None:
        timeout = asyncio.timeout(self.cycle_timeout)
        try:
            async with timeout:
                while self.is_running:
                    await asyncio.sleep(self.poll_interval)
                    await self._tick()
        except asyncio.CancelledError:
            self.reset()
            raise
        except Exception as e:
            cause = e
            if isinstance(e, TimeoutError) and timeout.expired():
                cause = MonitorTimeoutError(self.cycle_timeout)
            self._error(getattr(cause, "detail", None) or str(cause))
            self.reset()
            error = MonitorError(self.device.id, cause)
            self.device.set_warning(getattr(cause, "message", None) or error.message)
            raise error from cause

    async def _tick(self) -> None:
        """One polling step; the operation check always precedes the state check."""
        if isinstance(self._state, PollingOperation):
            await self._check_operation(self._state)
            # A completed operation switches to State mode, polled from the next tick
            return

        if isinstance(self._state, PollingState):
            await self._check_state(self._state)

    async def _check_operation(self, current: PollingOperation) -> None:
        operation = await self.client.get_operation(current.operation_id)
        tries = current.tries + 1
        self._state = PollingOperation(current.operation_id, tries)

        self._log(f"Operation status is '{operation.status}' ({tries}/{self.operation_max_tries})")

        if operation.succeeded:
            self._state = PollingState()
            self._log("Switched")
            return

        if tries > self.operation_max_tries:
            raise TooManyTriesError(MonitorMode.OPERATION.value, tries)

        if operation.is_pending:
            return

        raise OperationFailedError(operation.operation_id, operation.status, operation.result)

    async def _check_state(self, current: PollingState) -> None:
        details: LockDetails = await self.client.get_lock_details(self.device.tedee_id)
        tries = current.tries + 1
        self._state = PollingState(tries)

        state = details.state
        if state is None:
            raise UnknownStateError(None, device_id=self.device.id)

        self._log(f"Lock is {state_name(state)} ({tries}/{self.state_max_tries})")

        if state in (LockState.PULLING, LockState.PULLED) and not self._open_triggered:
            self._open_triggered = True
            await self.device.fire_opened()

        self.device.apply_details(details)

        if tries > self.state_max_tries:
            raise TooManyTriesError(MonitorMode.STATE.value, tries)

        if not self._should_continue(details):
            self._log(f"Lock settled as {state_name(state)}")
            self.reset()

    def _should_continue(self, details: LockDetails) -> bool:
        """Keep polling while the device is usable and the lock is moving."""
        return self.device.available and not self.device.removed and details.state.is_settling

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"[{self.device.id}] Background monitor failed: {exc!r}")

    # Logging

    def _log(self, message: str) -> None:
        logger.info(f"[{self.device.id} {self.mode.value} Monitor] {message}")

    def _error(self, message: str) -> None:
        logger.error(f"[{self.device.id} {self.mode.value} Monitor] {message}")
