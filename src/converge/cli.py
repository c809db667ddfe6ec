"""Compute lifecycle CLI (converge).

Usage:
    converge orchestration apply web.yaml   # Create or update, wait for desired state
    converge orchestration get web-app      # Print the orchestration as JSON
    converge orchestration delete web-app   # Terminate and wait until gone
    converge attachment create attach.yaml  # Attach a volume, wait until attached
    converge attachment get <name>
    converge attachment delete <name>

Configuration is read from the environment (see Config.from_env).
"""

from __future__ import annotations

import asyncio
import logging

import click

from .client import ComputeClient
from .config import Config, ConfigurationError
from .errors import ResourceNotFound
from .main import Operation, run_operation, setup_logging
from .resources.orchestrations import Orchestration, UpdateOrchestrationInput
from .resources.storage_attachments import StorageAttachment
from .spec_loader import load_orchestration, load_storage_attachment, resolve_spec_path


def load_config() -> Config:
    try:
        return Config.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def execute(ctx: click.Context, config: Config, operation: Operation) -> None:
    """Run ``operation`` to completion and exit with its status code."""
    ctx.exit(asyncio.run(run_operation(config, operation, click.echo)))


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log every poll iteration.")
def cli(verbose: bool) -> None:
    """Drive compute resources to their desired state."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)


# =============================================================================
# Orchestrations
# =============================================================================


@cli.group()
def orchestration() -> None:
    """Manage orchestrations."""


@orchestration.command("apply")
@click.argument("spec_file", type=click.Path(dir_okay=False))
@click.pass_context
def orchestration_apply(ctx: click.Context, spec_file: str) -> None:
    """Create the orchestration in SPEC_FILE, or update it if it exists."""
    config = load_config()
    poll_interval, timeout = config.wait_override()

    async def apply(client: ComputeClient) -> Orchestration:
        spec = load_orchestration(resolve_spec_path(config.specs_dir, spec_file))
        orchestrations = client.orchestrations()
        try:
            await orchestrations.get_orchestration(spec.name)
        except ResourceNotFound:
            return await orchestrations.create_orchestration(
                spec, poll_interval=poll_interval, timeout=timeout
            )
        return await orchestrations.update_orchestration(
            spec.name,
            UpdateOrchestrationInput.model_validate(spec.model_dump()),
            poll_interval=poll_interval,
            timeout=timeout,
        )

    execute(ctx, config, apply)


@orchestration.command("get")
@click.argument("name")
@click.pass_context
def orchestration_get(ctx: click.Context, name: str) -> None:
    """Print orchestration NAME."""
    config = load_config()

    async def get(client: ComputeClient) -> Orchestration:
        return await client.orchestrations().get_orchestration(name)

    execute(ctx, config, get)


@orchestration.command("delete")
@click.argument("name")
@click.pass_context
def orchestration_delete(ctx: click.Context, name: str) -> None:
    """Terminate orchestration NAME and wait until it is gone."""
    config = load_config()
    poll_interval, timeout = config.wait_override()

    async def delete(client: ComputeClient) -> None:
        await client.orchestrations().delete_orchestration(
            name, poll_interval=poll_interval, timeout=timeout
        )

    execute(ctx, config, delete)


# =============================================================================
# Storage attachments
# =============================================================================


@cli.group()
def attachment() -> None:
    """Manage storage volume attachments."""


@attachment.command("create")
@click.argument("spec_file", type=click.Path(dir_okay=False))
@click.pass_context
def attachment_create(ctx: click.Context, spec_file: str) -> None:
    """Attach the volume described in SPEC_FILE."""
    config = load_config()
    poll_interval, timeout = config.wait_override()

    async def create(client: ComputeClient) -> StorageAttachment:
        spec = load_storage_attachment(resolve_spec_path(config.specs_dir, spec_file))
        return await client.storage_attachments().create_storage_attachment(
            spec, poll_interval=poll_interval, timeout=timeout
        )

    execute(ctx, config, create)


@attachment.command("get")
@click.argument("name")
@click.pass_context
def attachment_get(ctx: click.Context, name: str) -> None:
    """Print storage attachment NAME."""
    config = load_config()

    async def get(client: ComputeClient) -> StorageAttachment:
        return await client.storage_attachments().get_storage_attachment(name)

    execute(ctx, config, get)


@attachment.command("delete")
@click.argument("name")
@click.pass_context
def attachment_delete(ctx: click.Context, name: str) -> None:
    """Detach storage attachment NAME and wait until it is gone."""
    config = load_config()
    poll_interval, timeout = config.wait_override()

    async def delete(client: ComputeClient) -> None:
        await client.storage_attachments().delete_storage_attachment(
            name, poll_interval=poll_interval, timeout=timeout
        )

    execute(ctx, config, delete)


def main() -> None:
    """Entry point for the converge CLI."""
    cli()


if __name__ == "__main__":
    main()
