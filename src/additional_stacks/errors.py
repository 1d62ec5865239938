"""
Error types raised while resolving, deploying and waiting on additional stacks.
"""

from typing import Optional


class AdditionalStacksError(Exception):
    """Base class for all additional stack errors."""


class ConfigurationError(AdditionalStacksError):
    """A stack definition in the configuration document is malformed."""

    def __init__(self, message: str, stack_name: Optional[str] = None):
        super().__init__(message)
        self.stack_name = stack_name


class StackNotFound(AdditionalStacksError):
    """An explicitly named stack is not defined in the configuration."""

    def __init__(self, stack_name: str):
        super().__init__(f"Additional stack not found: {stack_name}")
        self.stack_name = stack_name


class ProviderRequestError(AdditionalStacksError):
    """CloudFormation rejected a request for a reason we cannot recover from."""

    def __init__(self, stack_name: str, action: str, message: str):
        super().__init__(f"Failed to {action} stack {stack_name}: {message}")
        self.stack_name = stack_name
        self.action = action


class StackDoesNotExist(AdditionalStacksError):
    """The stack is not known to CloudFormation."""

    def __init__(self, stack_name: str):
        super().__init__(f"Stack {stack_name} does not exist")
        self.stack_name = stack_name


class NoPendingUpdates(AdditionalStacksError):
    """An update request carried no changes."""

    def __init__(self, stack_name: str):
        super().__init__(f"No updates are to be performed on stack {stack_name}")
        self.stack_name = stack_name


class StackOperationFailed(AdditionalStacksError):
    """A create, update or delete finished in a failed state."""

    def __init__(self, stack_name: str, operation: str, status: str):
        super().__init__(
            f"Stack {stack_name} {operation} failed with status {status}"
        )
        self.stack_name = stack_name
        self.operation = operation
        self.status = status


class StackWaitTimeout(AdditionalStacksError):
    """The waiter gave up before the stack reached a terminal state."""

    def __init__(self, stack_name: str, operation: str, status: Optional[str]):
        super().__init__(
            f"Timed out waiting for stack {stack_name} {operation} "
            f"(last status {status or 'unknown'})"
        )
        self.stack_name = stack_name
        self.operation = operation
        self.status = status


class OperationCancelled(AdditionalStacksError):
    """The wait was cancelled from outside between two polls."""

    def __init__(self, stack_name: str, operation: str):
        super().__init__(f"Cancelled waiting for stack {stack_name} {operation}")
        self.stack_name = stack_name
        self.operation = operation


class UnknownStackStatus(AdditionalStacksError):
    """CloudFormation reported a status this tool does not know about."""

    def __init__(self, status: str):
        super().__init__(f"Unknown CloudFormation stack status: {status}")
        self.status = status


class BatchFailed(AdditionalStacksError):
    """A stack in a batch failed and the remaining stacks were not attempted."""

    def __init__(self, stack_name: str, error: Exception):
        super().__init__(f"Additional stack {stack_name} failed: {error}")
        self.stack_name = stack_name
        self.error = error


class ArtifactWriteError(AdditionalStacksError):
    """The compiled template could not be written to the artifact directory."""

    def __init__(self, stack_name: str, path: str, message: str):
        super().__init__(f"Failed to write template for {stack_name} to {path}: {message}")
        self.stack_name = stack_name
        self.path = path
