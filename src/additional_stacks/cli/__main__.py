#!/usr/bin/env python3
"""Main CLI entry point for additional stack management."""

import logging
import sys
from dataclasses import dataclass
from typing import Optional

import click

from ..cloudformation.sequencer import BatchOperation, BatchResult, BatchSequencer
from ..cloudformation.stack_manager import StackManager
from ..config import StacksConfig, load_config
from ..hooks import LifecycleHooks

DEFAULT_CONFIG_FILE = "serverless.yml"


@dataclass
class CliContext:
    """Options shared by all commands."""
    config_file: str
    stage: Optional[str]
    region: Optional[str]
    profile: Optional[str]
    dry_run: bool
    skip: bool

    def load(self) -> StacksConfig:
        return load_config(
            self.config_file, stage=self.stage, region=self.region, profile=self.profile
        )

    def sequencer(self, config: StacksConfig) -> BatchSequencer:
        return BatchSequencer(StackManager(config, dry_run=self.dry_run))


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="additional-stacks")
@click.option(
    "--config", "-c", "config_file", default=DEFAULT_CONFIG_FILE,
    show_default=True, help="Configuration file",
)
@click.option("--stage", help="Deployment stage (overrides provider.stage)")
@click.option("--region", "-r", help="AWS region (overrides provider.region)")
@click.option("--profile", help="AWS profile to use")
@click.option("--dry-run", is_flag=True, help="Write templates without deploying")
@click.option(
    "--skip-additionalstacks", "skip", is_flag=True,
    help="Skip additional stacks in lifecycle hooks",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_file, stage, region, profile, dry_run, skip, verbose) -> None:
    """Deploy and manage additional CloudFormation stacks.

    Additional stacks are defined under custom.additionalStacks in the
    configuration file and live next to the primary service stack.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliContext(config_file, stage, region, profile, dry_run, skip)


def _select(config: StacksConfig, all_stacks: bool, stack: Optional[str], verb: str):
    if all_stacks:
        return config.stacks.all()
    if stack:
        return config.stacks.only(stack)
    raise click.UsageError(
        f"Please specify either --all to {verb} all additional stacks "
        f"or --stack NAME to {verb} a single stack"
    )


def _report_empty(batch: BatchResult) -> None:
    if batch.noop:
        click.echo(
            "No additional stacks defined. "
            "Add a custom.additionalStacks section to the configuration file."
        )


@cli.command()
@click.option("--all", "-a", "all_stacks", is_flag=True, help="Deploy all additional stacks")
@click.option("--stack", "-k", help="Additional stack name to deploy")
@click.pass_obj
def deploy(obj: CliContext, all_stacks: bool, stack: Optional[str]) -> None:
    """Deploy additional stacks."""
    try:
        config = obj.load()
        stacks = _select(config, all_stacks, stack, "deploy")
        if stack:
            click.echo(f"Deploying additional stack {stack}...")
        elif len(stacks) > 0:
            click.echo("Deploying all additional stacks...")
        batch = obj.sequencer(config).run_or_raise(stacks, BatchOperation.DEPLOY)
        _report_empty(batch)
    except click.ClickException:
        raise
    except Exception as e:
        _fail(e)


@cli.command()
@click.option("--all", "-a", "all_stacks", is_flag=True, help="Remove all additional stacks")
@click.option("--stack", "-k", help="Additional stack name to remove")
@click.pass_obj
def remove(obj: CliContext, all_stacks: bool, stack: Optional[str]) -> None:
    """Remove additional stacks (in reverse declaration order)."""
    try:
        config = obj.load()
        stacks = _select(config, all_stacks, stack, "remove")
        if stack:
            click.echo(f"Removing additional stack {stack}...")
        elif len(stacks) > 0:
            click.echo("Removing all additional stacks...")
        batch = obj.sequencer(config).run_or_raise(stacks, BatchOperation.DELETE)
        _report_empty(batch)
    except click.ClickException:
        raise
    except Exception as e:
        _fail(e)


@cli.command()
@click.pass_obj
def info(obj: CliContext) -> None:
    """Show the status of all additional stacks."""
    try:
        config = obj.load()
        batch = LifecycleHooks(config, obj.sequencer(config), skip=obj.skip).after_info()
        if not obj.skip:
            _report_empty(batch)
    except click.ClickException:
        raise
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("event", type=click.Choice(["before-deploy", "after-deploy", "after-info"]))
@click.pass_obj
def hook(obj: CliContext, event: str) -> None:
    """Run a lifecycle hook around the primary stack deployment."""
    try:
        config = obj.load()
        hooks = LifecycleHooks(config, obj.sequencer(config), skip=obj.skip)
        {
            "before-deploy": hooks.before_deploy,
            "after-deploy": hooks.after_deploy,
            "after-info": hooks.after_info,
        }[event]()
    except click.ClickException:
        raise
    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    cli()
