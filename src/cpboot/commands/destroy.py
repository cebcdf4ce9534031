"""destroy-environment command."""

from __future__ import annotations

import click

from ..configstore.disk import default_store
from ..decorators import handles_errors
from ..environs.orchestrator import destroy_environ
from ..shared.logging import bind_context


@click.command("destroy-environment")
@click.argument("name")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.option("--force", is_flag=True, help="Remove the environment info even if teardown fails")
@handles_errors
def destroy_environment(name: str, yes: bool, force: bool):
    """Destroy environment NAME and everything it created."""
    if not yes:
        if not click.confirm(f"This will destroy environment {name!r} and all its data. Continue?"):
            return
    bind_context(command="destroy-environment", environment=name)
    destroy_environ(default_store(), name, force=force)
    click.echo(f"✓ Environment {name!r} destroyed.")
