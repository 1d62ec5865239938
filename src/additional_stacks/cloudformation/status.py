"""
Simplified CloudFormation stack statuses.

Every status CloudFormation reports for a stack maps to exactly one
``OperationOutcome``. A status missing from the table is a contract violation
of the CloudFormation API and raises ``UnknownStackStatus``.
"""

from enum import Enum
from typing import Dict

from ..errors import UnknownStackStatus


class OperationOutcome(Enum):
    """Outcome of a stack operation as seen from one status poll."""
    SUCCESS = "success"
    FAILURE = "failure"
    IN_PROGRESS = "in_progress"


STACK_STATUS_OUTCOMES: Dict[str, OperationOutcome] = {
    "CREATE_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "CREATE_FAILED": OperationOutcome.FAILURE,
    "CREATE_COMPLETE": OperationOutcome.SUCCESS,
    "ROLLBACK_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "ROLLBACK_FAILED": OperationOutcome.FAILURE,
    # A create that rolled back left an empty, unusable stack
    "ROLLBACK_COMPLETE": OperationOutcome.FAILURE,
    "DELETE_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "DELETE_FAILED": OperationOutcome.FAILURE,
    "DELETE_COMPLETE": OperationOutcome.SUCCESS,
    "UPDATE_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "UPDATE_COMPLETE": OperationOutcome.SUCCESS,
    "UPDATE_FAILED": OperationOutcome.FAILURE,
    "UPDATE_ROLLBACK_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "UPDATE_ROLLBACK_FAILED": OperationOutcome.FAILURE,
    "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "UPDATE_ROLLBACK_COMPLETE": OperationOutcome.FAILURE,
    "REVIEW_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "IMPORT_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "IMPORT_COMPLETE": OperationOutcome.SUCCESS,
    "IMPORT_ROLLBACK_IN_PROGRESS": OperationOutcome.IN_PROGRESS,
    "IMPORT_ROLLBACK_FAILED": OperationOutcome.FAILURE,
    "IMPORT_ROLLBACK_COMPLETE": OperationOutcome.FAILURE,
}


def classify_status(status: str) -> OperationOutcome:
    """Map a CloudFormation stack status to its outcome."""
    try:
        return STACK_STATUS_OUTCOMES[status]
    except KeyError:
        raise UnknownStackStatus(status) from None


def is_terminal(status: str) -> bool:
    """Check if a status ends the wait loop."""
    return classify_status(status) is not OperationOutcome.IN_PROGRESS
