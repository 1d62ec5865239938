"""
Thin wrapper around the boto3 CloudFormation client.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import ProviderRequestError

logger = logging.getLogger(__name__)


def error_message(error: ClientError) -> str:
    """Message text of a CloudFormation error."""
    return str(error.response.get("Error", {}).get("Message") or error)


def is_stack_missing_error(error: ClientError) -> bool:
    """Check if a describe call failed because the stack does not exist."""
    return "does not exist" in error_message(error)


def is_no_updates_error(error: ClientError) -> bool:
    """Check if an update call failed only because there was nothing to change."""
    return error_message(error).startswith("No updates")


@dataclass(frozen=True)
class RemoteStackState:
    """CloudFormation's view of a stack."""
    name: str
    status: str
    tags: List[Dict[str, str]] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_response(cls, stack: Dict[str, Any]) -> "RemoteStackState":
        return cls(
            name=stack["StackName"],
            status=str(stack["StackStatus"]),
            tags=list(stack.get("Tags", [])),
            outputs={
                output["OutputKey"]: output["OutputValue"]
                for output in stack.get("Outputs", [])
            },
        )


class CloudFormationClient:
    """CloudFormation operations used by the stack manager."""

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        client: Any = None,
    ):
        """
        Initialize the client.

        Args:
            region: AWS region
            profile: AWS profile to use
            client: Pre-built boto3 CloudFormation client (used as-is)
        """
        self.region = region or "us-east-1"
        self.profile = profile

        if client is None:
            session_args = {"region_name": self.region}
            if profile:
                session_args["profile_name"] = profile
            session = boto3.Session(**session_args)
            client = session.client("cloudformation")
        self.cloudformation = client

    def describe_stack(self, stack_name: str) -> Optional[RemoteStackState]:
        """Get the current state of a stack, or None if it does not exist."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_stack_missing_error(e):
                return None
            raise ProviderRequestError(stack_name, "describe", error_message(e)) from e
        except BotoCoreError as e:
            # Connection, credential and endpoint failures
            raise ProviderRequestError(stack_name, "describe", str(e)) from e

        if response.get("Stacks"):
            return RemoteStackState.from_response(response["Stacks"][0])
        return None

    def create_stack(
        self,
        stack_name: str,
        template_body: str,
        tags: List[Dict[str, str]],
        capabilities: List[str],
        parameters: List[Dict[str, Any]],
    ) -> Optional[str]:
        """Submit a create request and return the stack id."""
        logger.debug(f"CreateStack {stack_name} capabilities={capabilities}")
        response = self.cloudformation.create_stack(
            StackName=stack_name,
            TemplateBody=template_body,
            Tags=tags,
            Capabilities=capabilities,
            Parameters=parameters,
            OnFailure="ROLLBACK",
        )
        return response.get("StackId")

    def update_stack(
        self,
        stack_name: str,
        template_body: str,
        tags: List[Dict[str, str]],
        capabilities: List[str],
        parameters: List[Dict[str, Any]],
    ) -> Optional[str]:
        """Submit an update request and return the stack id."""
        logger.debug(f"UpdateStack {stack_name} capabilities={capabilities}")
        response = self.cloudformation.update_stack(
            StackName=stack_name,
            TemplateBody=template_body,
            Tags=tags,
            Capabilities=capabilities,
            Parameters=parameters,
        )
        return response.get("StackId")

    def delete_stack(self, stack_name: str) -> None:
        logger.debug(f"DeleteStack {stack_name}")
        self.cloudformation.delete_stack(StackName=stack_name)
