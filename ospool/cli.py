"""
Command line tools for the OSPool HTCondor executor.

These commands expose the executor's building blocks for inspection and
troubleshooting outside a workflow run: queue status, the staging pass, and
the submit description generated for a task.
"""

import click

from .config import get_config_manager, setup_logging
from .config_cli import config_cli
from .errors import OspoolError
from .stage_cli import stage_cli
from .status_cli import status_cli
from .submit_cli import directives_cli


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v warnings, -vv info, -vvv debug)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="Additional config file with the highest precedence",
)
@click.pass_context
def ospool(ctx, version, verbose, config_file):
    """
    ospool - HTCondor job submission for the Open Science Pool

    Inspect the queue:
        ospool status
        condor_q -nobatch | ospool status --input -

    Run the staging pass for a project:
        ospool stage --work-dir /staging/me/work --project-dir ~/pipeline

    Preview a submit description:
        ospool directives --work-dir work/ab/abcdef --cpus 4 --memory "8 GB" --time 2h
    """
    # Handle version flag first
    if version:
        from . import __version__

        click.echo(f"ospool {__version__}")
        ctx.exit()

    try:
        manager = get_config_manager(config_file)
    except OspoolError as e:
        raise click.ClickException(str(e))

    setup_logging(verbose or None)
    ctx.obj = manager

    # If no subcommand and no version flag, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


# Register all subcommands
ospool.add_command(status_cli)
ospool.add_command(stage_cli)
ospool.add_command(directives_cli)
ospool.add_command(config_cli)
