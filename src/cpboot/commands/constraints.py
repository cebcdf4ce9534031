"""validate-constraints command."""

from __future__ import annotations

import click

from ..config import load_environments
from ..decorators import handles_errors
from ..environs.constraints import Constraints
from ..environs.registry import provider


@click.command("validate-constraints")
@click.option("-e", "--environment", "env_name", default=None, help="Environment to validate against")
@click.argument("constraints", nargs=-1)
@handles_errors
def validate_constraints(env_name: str | None, constraints: tuple[str, ...]):
    """Check CONSTRAINTS against what the environment's provider supports."""
    cfg = load_environments().config(env_name)
    cons = Constraints.parse(*constraints)
    environ = provider(cfg.type).open(cfg)
    unsupported = environ.constraints_validator().validate(cons)

    click.echo(f"Constraints: {str(cons) or '(none)'}")
    if unsupported:
        click.echo(f"Ignored by {cfg.type} provider: {', '.join(unsupported)}")
    else:
        click.echo("✓ All constraints supported.")
