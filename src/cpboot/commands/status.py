"""Status command."""

from __future__ import annotations

import click

from ..config import load_environments
from ..configstore.disk import default_store
from ..decorators import handles_errors
from ..environs.orchestrator import open_environ
from ..errors import NotBootstrappedError


@click.command()
@click.option("-e", "--environment", "env_name", default=None, help="Environment to inspect")
@handles_errors
def status(env_name: str | None):
    """Show the state servers of an environment."""
    name = load_environments().select(env_name)
    try:
        environ, info = open_environ(default_store(), name)
        instances = environ.state_server_instances()
    except NotBootstrappedError:
        click.echo(f"Environment {name!r} is not bootstrapped. Run: cpboot bootstrap -e {name}")
        return

    endpoint = info.api_endpoint
    click.echo(f"Environment: {name}")
    click.echo(f"Type: {environ.config.type}")
    click.echo("State servers:")
    for instance in instances:
        click.echo(f"  ✓ {instance}")
    if endpoint.addresses:
        click.echo(f"API addresses: {', '.join(endpoint.addresses)}")
