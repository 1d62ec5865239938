"""
Lifecycle hooks run around the primary service deployment.
"""

import logging
from typing import List

import click

from .cloudformation.sequencer import BatchOperation, BatchResult, BatchSequencer
from .cloudformation.stack_manager import StackAction
from .config import StackSet, StacksConfig

logger = logging.getLogger(__name__)


class LifecycleHooks:
    """Deploy and report additional stacks at the primary stack's lifecycle points."""

    def __init__(self, config: StacksConfig, sequencer: BatchSequencer, skip: bool = False):
        self.config = config
        self.sequencer = sequencer
        self.skip = skip

    def _deploy(self, stacks: StackSet) -> BatchResult:
        if self.skip:
            logger.info("Skipping additional stacks")
            return BatchResult(BatchOperation.DEPLOY)
        if len(stacks) > 0:
            click.echo("Deploying additional stacks...")
        return self.sequencer.run_or_raise(stacks, BatchOperation.DEPLOY)

    def before_deploy(self) -> BatchResult:
        """Deploy stacks marked Deploy: Before (the default)."""
        return self._deploy(self.config.stacks.before())

    def after_deploy(self) -> BatchResult:
        """Deploy stacks marked Deploy: After."""
        return self._deploy(self.config.stacks.after())

    def after_info(self) -> BatchResult:
        """Print the status of every additional stack."""
        if self.skip:
            return BatchResult(BatchOperation.INFO)
        batch = self.sequencer.run_or_raise(self.config.stacks, BatchOperation.INFO)
        if not batch.noop:
            click.echo("\n".join(format_info(batch)))
        return batch


def format_info(batch: BatchResult) -> List[str]:
    """Format an info batch for the terminal."""
    lines = ["Additional Stacks:"]
    for result in batch.results:
        if result.action is StackAction.MISSING:
            lines.append(f"  {result.name}: {result.stack_name} (does not exist)")
            continue
        lines.append(f"  {result.name}: {result.stack_name} ({result.status})")
        for key, value in result.outputs.items():
            lines.append(f"    {key}: {value}")
    return lines
