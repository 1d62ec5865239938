"""
Wait for a CloudFormation stack operation to reach a terminal state.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import click

from ..config import DEFAULT_POLL_INTERVAL
from ..errors import OperationCancelled, StackOperationFailed, StackWaitTimeout
from .client import CloudFormationClient
from .status import OperationOutcome, classify_status

logger = logging.getLogger(__name__)

OPERATION_CREATE = "create"
OPERATION_UPDATE = "update"
OPERATION_DELETE = "delete"

NOT_FOUND_STATUS = "NOT_FOUND"


class WaitState(Enum):
    """States of the stack wait loop."""
    QUERYING = "querying"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_FOUND = "not_found"


@dataclass
class WaitResult:
    """Terminal result of a successful wait."""
    stack_name: str
    operation: str
    status: str
    polls: int
    state: WaitState = WaitState.SUCCEEDED


class StackWaiter:
    """Poll a stack until its operation finishes."""

    def __init__(
        self,
        client: CloudFormationClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the waiter.

        Args:
            client: CloudFormation client used for status polls
            poll_interval: Seconds between polls
            timeout: Give up after this many seconds (unbounded if None)
            max_attempts: Give up after this many polls (unbounded if None)
            cancel_event: Setting this event stops the wait between polls
            clock: Monotonic clock, replaceable in tests
        """
        self.client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.cancel_event = cancel_event or threading.Event()
        self.clock = clock

    def _delay(self) -> bool:
        """Sleep for one poll interval. Returns True if cancelled meanwhile."""
        return self.cancel_event.wait(self.poll_interval)

    def wait(self, stack_name: str, operation: str) -> WaitResult:
        """
        Wait for ``operation`` on ``stack_name`` to finish.

        Raises:
            StackOperationFailed: The stack reached a failed terminal status
            StackWaitTimeout: The timeout or attempt limit was exceeded
            OperationCancelled: The cancel event was set
        """
        started = self.clock()
        polls = 0
        state = WaitState.QUERYING

        while True:
            if self.cancel_event.is_set():
                raise OperationCancelled(stack_name, operation)

            remote = self.client.describe_stack(stack_name)
            polls += 1

            if remote is None:
                state = WaitState.NOT_FOUND
                if operation == OPERATION_DELETE:
                    return WaitResult(
                        stack_name, operation, "DELETE_COMPLETE", polls, state
                    )
                raise StackOperationFailed(stack_name, operation, NOT_FOUND_STATUS)

            status = remote.status
            outcome = classify_status(status)
            logger.debug(f"{stack_name} poll {polls}: {status} ({outcome.value})")

            if outcome is OperationOutcome.SUCCESS:
                state = WaitState.SUCCEEDED
                return WaitResult(stack_name, operation, status, polls, state)
            if outcome is OperationOutcome.FAILURE:
                state = WaitState.FAILED
                raise StackOperationFailed(stack_name, operation, status)

            state = WaitState.IN_PROGRESS
            click.echo(f"⏳ {stack_name}: {status}")

            if self.max_attempts is not None and polls >= self.max_attempts:
                raise StackWaitTimeout(stack_name, operation, status)
            if self.timeout is not None and self.clock() - started >= self.timeout:
                raise StackWaitTimeout(stack_name, operation, status)

            if self._delay():
                raise OperationCancelled(stack_name, operation)
            state = WaitState.QUERYING
