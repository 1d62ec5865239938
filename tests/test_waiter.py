"""
Tests for the stack wait loop.
"""

import threading
from unittest.mock import Mock, patch

import pytest

from additional_stacks.cloudformation.client import RemoteStackState
from additional_stacks.cloudformation.waiter import StackWaiter, WaitState
from additional_stacks.errors import (
    OperationCancelled,
    StackOperationFailed,
    StackWaitTimeout,
    UnknownStackStatus,
)


def states(*statuses):
    return [
        None if status is None else RemoteStackState("test-stack", status)
        for status in statuses
    ]


class TestStackWaiter:
    """Test waiting for stack operations."""

    def create_waiter(self, *statuses, **kwargs) -> StackWaiter:
        """Create a waiter whose client reports the given statuses in turn."""
        client = Mock()
        client.describe_stack.side_effect = states(*statuses)
        return StackWaiter(client, poll_interval=0, **kwargs)

    def test_success_after_polling(self) -> None:
        """Test two in-progress polls lead to two delays and success."""
        waiter = self.create_waiter(
            "CREATE_IN_PROGRESS", "CREATE_IN_PROGRESS", "CREATE_COMPLETE"
        )

        with patch.object(waiter, "_delay", return_value=False) as mock_delay:
            result = waiter.wait("test-stack", "create")

        assert mock_delay.call_count == 2
        assert result.status == "CREATE_COMPLETE"
        assert result.polls == 3
        assert result.state is WaitState.SUCCEEDED
        assert waiter.client.describe_stack.call_count == 3

    def test_immediate_success(self) -> None:
        """Test an already complete stack needs no delay."""
        waiter = self.create_waiter("UPDATE_COMPLETE")

        with patch.object(waiter, "_delay", return_value=False) as mock_delay:
            result = waiter.wait("test-stack", "update")

        mock_delay.assert_not_called()
        assert result.status == "UPDATE_COMPLETE"

    def test_failure(self) -> None:
        """Test a failed terminal status raises with operation and status."""
        waiter = self.create_waiter("CREATE_IN_PROGRESS", "ROLLBACK_FAILED")

        with patch.object(waiter, "_delay", return_value=False):
            with pytest.raises(StackOperationFailed) as exc_info:
                waiter.wait("test-stack", "create")

        error = exc_info.value
        assert error.stack_name == "test-stack"
        assert error.operation == "create"
        assert error.status == "ROLLBACK_FAILED"
        assert "test-stack" in str(error)
        assert "ROLLBACK_FAILED" in str(error)

    def test_delete_not_found_is_success(self) -> None:
        """Test a vanished stack completes a delete."""
        waiter = self.create_waiter("DELETE_IN_PROGRESS", None)

        with patch.object(waiter, "_delay", return_value=False):
            result = waiter.wait("test-stack", "delete")

        assert result.status == "DELETE_COMPLETE"
        assert result.state is WaitState.NOT_FOUND

    def test_create_not_found_is_failure(self) -> None:
        """Test a vanished stack fails a create."""
        waiter = self.create_waiter(None)

        with pytest.raises(StackOperationFailed) as exc_info:
            waiter.wait("test-stack", "create")
        assert exc_info.value.status == "NOT_FOUND"

    def test_unknown_status(self) -> None:
        """Test unknown statuses are not swallowed."""
        waiter = self.create_waiter("SOMETHING_NEW")

        with pytest.raises(UnknownStackStatus):
            waiter.wait("test-stack", "create")

    def test_max_attempts(self) -> None:
        """Test the attempt limit stops the wait."""
        waiter = self.create_waiter(
            "CREATE_IN_PROGRESS", "CREATE_IN_PROGRESS", "CREATE_COMPLETE",
            max_attempts=2,
        )

        with patch.object(waiter, "_delay", return_value=False):
            with pytest.raises(StackWaitTimeout) as exc_info:
                waiter.wait("test-stack", "create")

        assert exc_info.value.status == "CREATE_IN_PROGRESS"
        assert waiter.client.describe_stack.call_count == 2

    def test_timeout(self) -> None:
        """Test the time limit stops the wait."""
        clock = Mock(side_effect=[0.0, 10.0, 20.0])
        waiter = self.create_waiter(
            "UPDATE_IN_PROGRESS", "UPDATE_IN_PROGRESS", "UPDATE_COMPLETE",
            timeout=15, clock=clock,
        )

        with patch.object(waiter, "_delay", return_value=False):
            with pytest.raises(StackWaitTimeout):
                waiter.wait("test-stack", "update")

        assert waiter.client.describe_stack.call_count == 2

    def test_cancel_before_first_poll(self) -> None:
        """Test a set cancel event stops the wait immediately."""
        event = threading.Event()
        event.set()
        waiter = self.create_waiter("CREATE_IN_PROGRESS", cancel_event=event)

        with pytest.raises(OperationCancelled):
            waiter.wait("test-stack", "create")

        waiter.client.describe_stack.assert_not_called()

    def test_cancel_during_delay(self) -> None:
        """Test cancelling between polls."""
        waiter = self.create_waiter("CREATE_IN_PROGRESS", "CREATE_COMPLETE")

        with patch.object(waiter, "_delay", return_value=True):
            with pytest.raises(OperationCancelled):
                waiter.wait("test-stack", "create")

        assert waiter.client.describe_stack.call_count == 1

    def test_delay_waits_on_event(self) -> None:
        """Test the delay uses the cancel event with the poll interval."""
        event = Mock()
        event.wait.return_value = False
        waiter = StackWaiter(Mock(), poll_interval=5, cancel_event=event)

        assert waiter._delay() is False
        event.wait.assert_called_once_with(5)
