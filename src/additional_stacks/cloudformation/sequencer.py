"""
Run a stack operation across a set of additional stacks, one at a time.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import StackSet
from ..errors import AdditionalStacksError, BatchFailed
from .stack_manager import StackManager, StackResult

logger = logging.getLogger(__name__)


class BatchOperation(Enum):
    """Operations the sequencer can run."""
    DEPLOY = "deploy"
    DELETE = "delete"
    INFO = "info"


@dataclass
class BatchResult:
    """Outcome of running an operation over a stack set."""
    operation: BatchOperation
    results: List[StackResult] = field(default_factory=list)
    failed_stack: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def noop(self) -> bool:
        """True when there were no stacks to process."""
        return self.ok and not self.results

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise BatchFailed(self.failed_stack, self.error) from self.error


class BatchSequencer:
    """Apply a stack operation to each stack in order, stopping on the first failure."""

    def __init__(self, manager: StackManager):
        self.manager = manager

    def run(self, stacks: StackSet, operation: BatchOperation) -> BatchResult:
        """
        Run ``operation`` over ``stacks``.

        Deploy and info follow declaration order; delete runs in reverse so
        later stacks, which may depend on earlier ones, are removed first.
        """
        batch = BatchResult(operation)
        if operation is BatchOperation.DELETE:
            stacks = stacks.reversed()

        handler = {
            BatchOperation.DEPLOY: self.manager.deploy_stack,
            BatchOperation.DELETE: self.manager.delete_stack,
            BatchOperation.INFO: self.manager.stack_info,
        }[operation]

        for name, definition in stacks.items():
            try:
                batch.results.append(handler(name, definition))
            except AdditionalStacksError as e:
                logger.debug(f"{operation.value} of additional stack {name} failed: {e}")
                batch.failed_stack = name
                batch.error = e
                break

        return batch

    def run_or_raise(self, stacks: StackSet, operation: BatchOperation) -> BatchResult:
        """Run the batch and raise BatchFailed if any stack failed."""
        batch = self.run(stacks, operation)
        batch.raise_for_failure()
        return batch
