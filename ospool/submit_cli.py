"""
Preview the HTCondor submit description for a task.

Prints the exact text the executor would write to ``.command.condor`` for a
task with the given work directory and resource requests, without writing
or submitting anything.
"""

import click

from .condor.directives import build_directives, directives_text, resolve_submit_file_path
from .config import get_config_manager
from .errors import OspoolError
from .execution.task import TaskResources, TaskRun
from .resources import parse_duration_seconds, parse_memory_size


def _validate_memory(ctx, param, value):
    if value is not None and parse_memory_size(value) is None:
        raise click.BadParameter(f"Cannot parse size '{value}' (e.g. 4GB, 512 MB)")
    return value


def _validate_time(ctx, param, value):
    if value is None:
        return value
    try:
        parse_duration_seconds(value)
    except ValueError as e:
        raise click.BadParameter(str(e))
    return value


@click.command(name="directives")
@click.option(
    "--work-dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Task work directory (<work root>/<prefix>/<hash>)",
)
@click.option("--cpus", type=click.IntRange(min=1), default=1, show_default=True, help="Requested CPUs")
@click.option("--memory", callback=_validate_memory, help="Requested memory (e.g. '8 GB')")
@click.option("--disk", callback=_validate_memory, help="Requested disk (e.g. '20 GB')")
@click.option("--time", "wall_time", callback=_validate_time, help="Wall-time limit (e.g. 2h, 1h30m, 02:00:00)")
@click.option(
    "--cluster-options",
    help="Extra submit directives separated by ';' or newlines",
)
@click.option("--show-path", is_flag=True, help="Also print where the submit file would be written")
@click.pass_context
def directives_cli(ctx, work_dir, cpus, memory, disk, wall_time, cluster_options, show_path):
    """Print the submit description generated for a task."""
    manager = ctx.obj or get_config_manager()
    try:
        config = manager.get_executor_config()
    except OspoolError as e:
        raise click.ClickException(str(e))

    task = TaskRun(
        name=click.format_filename(work_dir),
        work_dir=work_dir,
        resources=TaskResources(cpus=cpus, memory=memory, disk=disk, time=wall_time),
        cluster_options=cluster_options,
    )

    if show_path:
        submit_file = resolve_submit_file_path(task.work_dir, config.submit_file_dir)
        click.echo(f"# {submit_file}")
    click.echo(directives_text(build_directives(task, config)), nl=False)
