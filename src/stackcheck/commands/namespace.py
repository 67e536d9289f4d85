"""Namespace commands.

`stackcheck create namespace NAME` and `stackcheck delete namespace NAME`
wrap the orchestration binary, for setting up or cleaning after a run by
hand.
"""

from __future__ import annotations

import asyncio
import sys

import click

from ..errors import HarnessError
from ..lifecycle import NamespaceProvisioner, resolve_binary
from ._common import load_or_exit


@click.group()
def create():
    """Create resources."""


@click.group()
def delete():
    """Delete resources."""


@create.command("namespace")
@click.argument("name")
@click.pass_context
def create_namespace(ctx, name):
    """Create a namespace."""
    _namespace_action(ctx, "create", name)


@delete.command("namespace")
@click.argument("name")
@click.pass_context
def delete_namespace(ctx, name):
    """Delete a namespace."""
    _namespace_action(ctx, "delete", name)


def _namespace_action(ctx: click.Context, action: str, name: str) -> None:
    config = load_or_exit(ctx)

    async def _run() -> None:
        info = await resolve_binary(config.binary)
        provisioner = NamespaceProvisioner(info.path)
        if action == "create":
            await provisioner.create(name)
        else:
            await provisioner.delete(name)

    try:
        asyncio.run(_run())
    except HarnessError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    click.echo(f"✓ Namespace '{name}' {action}d.")
