"""init-state command: seed a fresh state database."""

from __future__ import annotations

import click

from ..decorators import handles_errors
from ..mongo.session import DialInfo
from ..state.seed import initialize_state

DEFAULT_STATE_SERVER = "127.0.0.1:37017"


@click.command("init-state")
@click.option(
    "--state-servers",
    multiple=True,
    default=[DEFAULT_STATE_SERVER],
    show_default=True,
    help="State database address (host:port); repeatable",
)
@click.option("--instance-id", default="", help="Provider instance id of the bootstrap machine")
@click.option("--env-type", default="", help="Environment type")
@click.option("--user", default=None, help="Admin user to connect as")
@click.option("--password", default=None, help="Admin password")
@click.option("--ca-file", type=click.Path(exists=True, dir_okay=False), default=None, help="CA certificate")
@click.option("--timeout", default=10.0, type=float, help="Connection timeout in seconds")
@handles_errors
def init_state(
    state_servers: tuple[str, ...],
    instance_id: str,
    env_type: str,
    user: str | None,
    password: str | None,
    ca_file: str | None,
    timeout: float,
):
    """Initialize the state database of a new environment."""
    dial_info = DialInfo(timeout=timeout, username=user, password=password, ca_file=ca_file)
    initialize_state(list(state_servers), instance_id, env_type, dial_info=dial_info)
    click.echo("✓ State initialized.")
