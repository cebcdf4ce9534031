"""CLI main entry point."""

import click

from . import __version__
from .commands.bootstrap import bootstrap
from .commands.constraints import validate_constraints
from .commands.destroy import destroy_environment
from .commands.initstate import init_state
from .commands.status import status
from .decorators import handles_errors
from .shared.logging import configure_logging


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write JSON logs to this file")
@click.version_option(__version__, prog_name="cpboot")
@click.pass_context
@handles_errors
def cli(ctx: click.Context, verbose: int, log_file: str | None) -> None:
    """Bootstrap and tear down cpboot control planes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    level = {0: "warning", 1: "info"}.get(verbose, "debug")
    configure_logging(level, log_file=log_file)


cli.add_command(bootstrap)
cli.add_command(destroy_environment)
cli.add_command(status)
cli.add_command(init_state)
cli.add_command(validate_constraints)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
