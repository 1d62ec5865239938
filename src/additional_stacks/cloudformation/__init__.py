"""
CloudFormation stack management for additional stacks.
"""

from .client import CloudFormationClient, RemoteStackState
from .sequencer import BatchOperation, BatchResult, BatchSequencer
from .stack_manager import StackAction, StackManager, StackResult
from .status import OperationOutcome, classify_status
from .template import CompiledTemplate, compile_template
from .waiter import StackWaiter, WaitResult

__all__ = [
    "BatchOperation",
    "BatchResult",
    "BatchSequencer",
    "CloudFormationClient",
    "CompiledTemplate",
    "OperationOutcome",
    "RemoteStackState",
    "StackAction",
    "StackManager",
    "StackResult",
    "StackWaiter",
    "WaitResult",
    "classify_status",
    "compile_template",
]
