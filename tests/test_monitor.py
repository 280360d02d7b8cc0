"""Tests for the operation and state monitor."""

import asyncio

import pytest

from conftest import completed, make_details, pending
from devices.monitor import (
    Idle,
    Monitor,
    MonitorMode,
    MonitorPhase,
    PollingOperation,
    PollingState,
)
from models.lock import LockState
from utils.errors import (
    MonitorError,
    MonitorTimeoutError,
    OperationFailedError,
    ResponseError,
    TooManyTriesError,
    UnknownStateError,
)
from utils.i18n import translate


def assert_idle(monitor: Monitor) -> None:
    assert monitor.state == Idle()
    assert monitor.phase == MonitorPhase.READY
    assert monitor.mode == MonitorMode.STATE
    assert monitor.operation_id is None
    assert monitor.try_count == 0
    assert monitor.open_triggered is False


class TestMonitorState:
    """Tests for the derived views of the state machine."""

    def test_new_monitor_is_idle(self, tedee_lock):
        """Test a fresh monitor is ready."""
        assert_idle(tedee_lock.monitor)
        assert not tedee_lock.monitor.is_running

    def test_begin_with_operation(self, tedee_lock):
        """Test starting with an operation id enters Operation mode."""
        monitor = tedee_lock.monitor
        monitor._begin("op-1")

        assert monitor.state == PollingOperation("op-1", 0)
        assert monitor.phase == MonitorPhase.RUNNING
        assert monitor.mode == MonitorMode.OPERATION
        assert monitor.operation_id == "op-1"
        assert monitor.try_count == 0

    def test_begin_without_operation(self, tedee_lock):
        """Test starting without an operation id enters State mode."""
        monitor = tedee_lock.monitor
        monitor._begin(None)

        assert monitor.state == PollingState(0)
        assert monitor.mode == MonitorMode.STATE
        assert monitor.operation_id is None

    def test_reset_is_idempotent(self, tedee_lock):
        """Test reset twice leaves the monitor idle."""
        monitor = tedee_lock.monitor
        monitor._begin("op-1")
        monitor.reset()
        monitor.reset()

        assert_idle(monitor)


class TestOperationMode:
    """Tests for polling a command's operation record."""

    @pytest.mark.asyncio
    async def test_success_switches_to_state_mode_on_next_tick(self, tedee_lock, fake_client):
        """Test a successful operation is followed by a state poll one tick later."""
        monitor = tedee_lock.monitor
        fake_client.operations = [completed("op-1")]
        monitor._begin("op-1")

        await monitor._tick()

        assert monitor.state == PollingState(0)
        assert monitor.mode == MonitorMode.STATE
        assert monitor.operation_id is None
        assert monitor.try_count == 0
        assert fake_client.calls["get_lock_details"] == 0

        await monitor._tick()

        assert fake_client.calls["get_lock_details"] == 1

    @pytest.mark.asyncio
    async def test_pending_increments_tries(self, tedee_lock, fake_client):
        """Test a pending operation keeps polling."""
        monitor = tedee_lock.monitor
        fake_client.operations = [pending(), pending()]
        monitor._begin("op-1")

        await monitor._tick()
        await monitor._tick()

        assert monitor.state == PollingOperation("op-1", 2)
        assert monitor.is_running

    @pytest.mark.asyncio
    async def test_six_pending_exhausts(self, tedee_lock, fake_client):
        """Test the sixth pending poll exceeds the try ceiling."""
        fake_client.operations = [pending() for _ in range(6)]

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run("op-1")

        assert isinstance(exc_info.value.cause, TooManyTriesError)
        assert exc_info.value.cause.tries == 6
        assert exc_info.value.cause.mode == "Operation"
        assert fake_client.calls["get_operation"] == 6
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_five_pending_then_success(self, tedee_lock, fake_client):
        """Test five pending polls stay within the ceiling."""
        fake_client.operations = [pending() for _ in range(5)] + [completed()]

        await tedee_lock.monitor.run("op-1")

        assert fake_client.calls["get_operation"] == 6
        assert fake_client.calls["get_lock_details"] == 1
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_failed_operation(self, tedee_lock, fake_client):
        """Test a terminal non-zero result fails the cycle."""
        fake_client.operations = [completed(result=1)]

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run("op-1")

        cause = exc_info.value.cause
        assert isinstance(cause, OperationFailedError)
        assert cause.result == 1
        assert exc_info.value.__cause__ is cause
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_error_message_is_generic(self, tedee_lock, fake_client):
        """Test cycle failures carry the generic response message."""
        fake_client.operations = [ResponseError("Bad gateway", status_code=502)]

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run("op-1")

        assert exc_info.value.key == "errors.response"
        assert "Invalid response" in exc_info.value.message
        assert_idle(tedee_lock.monitor)


class TestStateMode:
    """Tests for polling the lock state until it settles."""

    @pytest.mark.asyncio
    async def test_settles_and_applies_state(self, tedee_lock, fake_client):
        """Test settling states keep polling and the final state is applied."""
        fake_client.details = [LockState.LOCKING, LockState.LOCKING, LockState.LOCKED]

        await tedee_lock.monitor.run()

        assert fake_client.calls["get_lock_details"] == 3
        assert tedee_lock.get_capability_value("locked") is True
        assert tedee_lock.lock_state == LockState.LOCKED
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_settles_within_six_polls(self, tedee_lock, fake_client):
        """Test a lock settling on the sixth poll completes normally."""
        fake_client.details = [LockState.LOCKING] * 5 + [LockState.LOCKED]

        await tedee_lock.monitor.run()

        assert fake_client.calls["get_lock_details"] == 6
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_exhausts_after_six_tries(self, tedee_lock, fake_client):
        """Test the State mode ceiling is six tries, not five."""
        fake_client.details = [LockState.LOCKING] * 10

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run()

        assert isinstance(exc_info.value.cause, TooManyTriesError)
        assert exc_info.value.cause.mode == "State"
        assert exc_info.value.cause.tries == 7
        assert fake_client.calls["get_lock_details"] == 7
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_opened_trigger_fires_once(self, pull_spring_lock, fake_client):
        """Test the opened trigger fires once per cycle."""
        fired = []
        pull_spring_lock.register_trigger("opened", lambda device, tokens: fired.append(device.id))
        fake_client.details = [
            LockState.PULLING,
            LockState.PULLING,
            LockState.PULLED,
            LockState.UNLOCKED,
        ]

        await pull_spring_lock.monitor.run()

        assert fired == ["front_door"]
        assert_idle(pull_spring_lock.monitor)

    @pytest.mark.asyncio
    async def test_opened_trigger_fires_again_next_cycle(self, pull_spring_lock, fake_client):
        """Test the once-per-cycle flag is cleared between cycles."""
        fired = []
        pull_spring_lock.register_trigger("opened", lambda device, tokens: fired.append(1))

        fake_client.details = [LockState.PULLED, LockState.UNLOCKED]
        await pull_spring_lock.monitor.run()
        fake_client.details = [LockState.PULLING, LockState.UNLOCKED]
        await pull_spring_lock.monitor.run()

        assert len(fired) == 2

    @pytest.mark.asyncio
    async def test_no_opened_trigger_without_pull_spring(self, tedee_lock, fake_client):
        """Test locks without the open capability never fire opened."""
        fired = []
        tedee_lock.register_trigger("opened", lambda device, tokens: fired.append(1))
        fake_client.details = [LockState.PULLING, LockState.UNLOCKED]

        await tedee_lock.monitor.run()

        assert fired == []

    @pytest.mark.asyncio
    async def test_stops_when_device_disconnects(self, tedee_lock, fake_client):
        """Test polling stops once the device becomes unavailable."""
        fake_client.details = [
            make_details(state=LockState.LOCKING, is_connected=False),
            LockState.LOCKED,
        ]

        await tedee_lock.monitor.run()

        assert fake_client.calls["get_lock_details"] == 1
        assert not tedee_lock.available
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_absent_state_fails(self, tedee_lock, fake_client):
        """Test a lock record without state fails the cycle."""
        fake_client.details = [make_details(state=None)]

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run()

        assert isinstance(exc_info.value.cause, UnknownStateError)
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_transport_error_resets(self, tedee_lock, fake_client):
        """Test a transport error during state polling resets the monitor."""
        fake_client.details = [LockState.LOCKING, ResponseError("Request failed")]

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run()

        assert isinstance(exc_info.value.cause, ResponseError)
        assert_idle(tedee_lock.monitor)


class TestMonitorLifecycle:
    """Tests for single-flight, background cycles and cancellation."""

    @pytest.mark.asyncio
    async def test_run_while_running_is_noop(self, tedee_lock, fake_client):
        """Test a second run does not disturb the running cycle."""
        monitor = tedee_lock.monitor
        monitor._begin("op-1")

        await monitor.run()

        assert monitor.state == PollingOperation("op-1", 0)
        assert fake_client.calls["get_operation"] == 0

    @pytest.mark.asyncio
    async def test_start_returns_none_while_running(self, tedee_lock):
        """Test only one background cycle is started."""
        monitor = tedee_lock.monitor
        first = monitor.start("op-1")
        second = monitor.start("op-2")

        assert first is not None
        assert second is None
        assert monitor.operation_id == "op-1"

        await monitor.wait()

    @pytest.mark.asyncio
    async def test_start_runs_in_background(self, tedee_lock, fake_client):
        """Test a background cycle completes on its own."""
        fake_client.details = [LockState.LOCKING, LockState.LOCKED]

        task = tedee_lock.monitor.start("op-1")
        assert tedee_lock.monitor.is_running
        await task

        assert tedee_lock.get_capability_value("locked") is True
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_background_failure_surfaces_on_wait(self, tedee_lock, fake_client):
        """Test wait() raises the failure of a background cycle."""
        fake_client.operations = [pending() for _ in range(6)]

        tedee_lock.monitor.start("op-1")

        with pytest.raises(MonitorError):
            await tedee_lock.monitor.wait()
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_background_failure_sets_warning(self, tedee_lock, fake_client):
        """Test a failed cycle leaves a localized warning until the next cycle."""
        fake_client.operations = [pending() for _ in range(6)]

        task = tedee_lock.monitor.start("op-1")
        await asyncio.wait({task})

        assert tedee_lock.warning == translate("errors.tooManyTries")
        assert tedee_lock.to_state_dict()["warning"] == tedee_lock.warning

        tedee_lock.monitor.start("op-2")
        assert tedee_lock.warning is None
        await tedee_lock.monitor.wait()
        assert tedee_lock.warning is None

    @pytest.mark.asyncio
    async def test_wait_reports_failure_once(self, tedee_lock, fake_client):
        """Test a failed cycle is raised by the first wait only."""
        fake_client.operations = [pending() for _ in range(6)]
        tedee_lock.monitor.start("op-1")

        with pytest.raises(MonitorError):
            await tedee_lock.monitor.wait()

        await tedee_lock.monitor.wait()
        assert tedee_lock.monitor.task is None

    @pytest.mark.asyncio
    async def test_wait_without_task(self, tedee_lock):
        """Test wait() without a started cycle returns immediately."""
        await tedee_lock.monitor.wait()

    @pytest.mark.asyncio
    async def test_cycle_timeout(self, tedee_lock, fake_client):
        """Test a cycle outliving its timeout is stopped."""
        monitor = Monitor(tedee_lock, fake_client, poll_interval=1.0, cycle_timeout=0.01)

        with pytest.raises(MonitorError) as exc_info:
            await monitor.run("op-1")

        assert isinstance(exc_info.value.cause, MonitorTimeoutError)
        assert_idle(monitor)

    @pytest.mark.asyncio
    async def test_client_timeout_is_not_cycle_timeout(self, tedee_lock, fake_client):
        """Test a timeout raised by an API call keeps its own cause."""
        fake_client.operations = [TimeoutError("read timed out")]

        with pytest.raises(MonitorError) as exc_info:
            await tedee_lock.monitor.run("op-1")

        assert type(exc_info.value.cause) is TimeoutError
        assert not isinstance(exc_info.value.cause, MonitorTimeoutError)
        assert_idle(tedee_lock.monitor)

    @pytest.mark.asyncio
    async def test_cancel(self, tedee_lock, fake_client):
        """Test cancelling a background cycle resets the monitor."""
        monitor = Monitor(tedee_lock, fake_client, poll_interval=10.0)
        task = monitor.start("op-1")
        await asyncio.sleep(0)

        await monitor.cancel()

        assert task.cancelled()
        assert monitor.task is None
        assert fake_client.calls["get_operation"] == 0
        assert_idle(monitor)
