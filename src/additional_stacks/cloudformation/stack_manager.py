"""
Deploy, remove and describe additional CloudFormation stacks.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import click
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StackDefinition, StacksConfig
from ..errors import ArtifactWriteError, NoPendingUpdates, ProviderRequestError
from .client import CloudFormationClient, error_message, is_no_updates_error
from .template import (
    build_tags,
    compile_template,
    resolve_stack_name,
    write_template,
)
from .waiter import (
    OPERATION_CREATE,
    OPERATION_DELETE,
    OPERATION_UPDATE,
    StackWaiter,
)

logger = logging.getLogger(__name__)

BASE_CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]
TRANSFORM_CAPABILITY = "CAPABILITY_AUTO_EXPAND"


class StackAction(Enum):
    """What happened to a stack."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    SKIPPED = "skipped"
    MISSING = "missing"
    INFO = "info"


@dataclass
class StackResult:
    """Result of one stack operation."""
    name: str
    stack_name: str
    action: StackAction
    status: Optional[str] = None
    template_path: Optional[Path] = None
    outputs: Dict[str, str] = field(default_factory=dict)


def stack_capabilities(has_transform: bool) -> List[str]:
    """Capabilities required for a create or update request."""
    capabilities = list(BASE_CAPABILITIES)
    if has_transform:
        capabilities.append(TRANSFORM_CAPABILITY)
    return capabilities


class StackManager:
    """Drive create, update and delete operations for additional stacks."""

    def __init__(
        self,
        config: StacksConfig,
        client: Optional[CloudFormationClient] = None,
        waiter: Optional[StackWaiter] = None,
        dry_run: bool = False,
    ):
        """
        Initialize stack manager.

        Args:
            config: Resolved configuration for this run
            client: CloudFormation client (built from config region/profile if omitted)
            waiter: Stack waiter (built from config poll settings if omitted)
            dry_run: Compile and write templates without touching CloudFormation
        """
        self.config = config
        self.client = client or CloudFormationClient(
            region=config.region, profile=config.profile
        )
        self.waiter = waiter or StackWaiter(
            self.client,
            poll_interval=config.poll_interval,
            timeout=config.timeout,
        )
        self.dry_run = dry_run

    def full_name(self, definition: StackDefinition) -> str:
        return resolve_stack_name(definition, self.config.stack_prefix)

    def deploy_stack(self, name: str, definition: StackDefinition) -> StackResult:
        """Create or update one stack and wait for it to finish."""
        compiled = compile_template(definition)
        stack_name = self.full_name(definition)
        tags = build_tags(definition, self.config.stage, self.config.stack_tags)
        capabilities = stack_capabilities(compiled.has_transform)
        parameters = list(definition.stack_parameters or [])

        # The template must be on disk before any remote call
        try:
            path = write_template(compiled, self.config.artifact_directory)
        except OSError as e:
            raise ArtifactWriteError(
                stack_name, str(self.config.artifact_directory), str(e)
            ) from e
        logger.debug(f"Wrote template for {name} to {path}")

        if self.dry_run:
            click.echo(f"🔍 DRY RUN: {stack_name} not deployed (template: {path})")
            return StackResult(name, stack_name, StackAction.SKIPPED, template_path=path)

        remote = self.client.describe_stack(stack_name)
        body = compiled.to_json()

        if remote is None:
            click.echo(f"🚀 Creating stack {stack_name}...")
            self._request(
                stack_name, "create", self.client.create_stack,
                stack_name, body, tags, capabilities, parameters,
            )
            operation = OPERATION_CREATE
            action = StackAction.CREATED
        else:
            click.echo(f"🔄 Updating stack {stack_name}...")
            try:
                self._request(
                    stack_name, "update", self.client.update_stack,
                    stack_name, body, tags, capabilities, parameters,
                )
            except NoPendingUpdates:
                click.echo(f"✅ Stack {stack_name} is up to date")
                return StackResult(
                    name, stack_name, StackAction.UNCHANGED,
                    status=remote.status, template_path=path,
                )
            operation = OPERATION_UPDATE
            action = StackAction.UPDATED

        result = self.waiter.wait(stack_name, operation)
        click.echo(f"✅ Stack {stack_name} {result.status}")
        return StackResult(
            name, stack_name, action, status=result.status, template_path=path
        )

    def delete_stack(self, name: str, definition: StackDefinition) -> StackResult:
        """Delete one stack and wait until it is gone."""
        stack_name = self.full_name(definition)

        if self.dry_run:
            click.echo(f"🔍 DRY RUN: {stack_name} not removed")
            return StackResult(name, stack_name, StackAction.SKIPPED)

        remote = self.client.describe_stack(stack_name)
        if remote is None:
            click.echo(f"Stack {stack_name} does not exist")
            return StackResult(name, stack_name, StackAction.MISSING)

        click.echo(f"🗑️  Deleting stack {stack_name}...")
        self._request(stack_name, "delete", self.client.delete_stack, stack_name)

        result = self.waiter.wait(stack_name, OPERATION_DELETE)
        click.echo(f"✅ Stack {stack_name} deleted")
        return StackResult(name, stack_name, StackAction.DELETED, status=result.status)

    def stack_info(self, name: str, definition: StackDefinition) -> StackResult:
        """Describe the current state of one stack."""
        stack_name = self.full_name(definition)
        remote = self.client.describe_stack(stack_name)
        if remote is None:
            return StackResult(name, stack_name, StackAction.MISSING)
        return StackResult(
            name, stack_name, StackAction.INFO,
            status=remote.status, outputs=remote.outputs,
        )

    def _request(self, stack_name: str, action: str, call, *args) -> None:
        """Submit a request, translating CloudFormation errors."""
        try:
            call(*args)
        except ClientError as e:
            if action == "update" and is_no_updates_error(e):
                raise NoPendingUpdates(stack_name) from e
            raise ProviderRequestError(stack_name, action, error_message(e)) from e
        except BotoCoreError as e:
            raise ProviderRequestError(stack_name, action, str(e)) from e
