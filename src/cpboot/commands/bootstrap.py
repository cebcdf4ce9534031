"""Bootstrap command.

Prepares the selected environment, launches its bootstrap machine,
secures the state database and runs the bootstrap finalizer.
"""

from __future__ import annotations

import click

from ..config import load_environments
from ..configstore.disk import default_store
from ..decorators import console, handles_errors
from ..environs.constraints import Constraints
from ..environs.interface import BootstrapContext, BootstrapParams
from ..environs.orchestrator import BootstrapOrchestrator
from ..shared.logging import bind_context
from ..shared.paths import ensure_home


@click.command()
@click.option("-e", "--environment", "env_name", default=None, help="Environment to bootstrap")
@click.option("--constraints", multiple=True, help="Machine constraints (key=value ...)")
@click.option("--series", default=None, help="OS series of the bootstrap machine")
@click.pass_context
@handles_errors
def bootstrap(ctx: click.Context, env_name: str | None, constraints: tuple[str, ...], series: str | None):
    """Bootstrap an environment."""
    cons = Constraints.parse(*constraints)
    cfg = load_environments().config(env_name).with_admin_secret()
    bind_context(command="bootstrap", environment=cfg.name)

    ensure_home()
    bctx = BootstrapContext(console=console, verbose=bool((ctx.obj or {}).get("verbose")))
    orchestrator = BootstrapOrchestrator.for_config(cfg, default_store())
    orchestrator.prepare(bctx, cfg)
    outcome = orchestrator.bootstrap(bctx, BootstrapParams(constraints=cons, series=series))

    click.echo(f"Bootstrapped {cfg.name} on {outcome.instance_id} ({outcome.hardware})")
    outcome.finalize(bctx)
    click.echo("✓ Environment ready.")
