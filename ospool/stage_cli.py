"""
Run the executor's staging pass from the command line.

Useful to check what a workflow run would copy to compute-accessible storage
before submitting anything.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .config import get_config_manager
from .errors import OspoolError
from .execution.task import SecretsStore, Session
from .executor import OspoolExecutor

console = Console()


@click.command(name="stage")
@click.option(
    "--work-dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Run work directory (staged copies are placed here)",
)
@click.option(
    "--project-dir",
    required=True,
    type=click.Path(exists=True, file_okay=False),
    help="Project directory (value of ${projectDir})",
)
@click.option(
    "--secrets-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Local secrets directory to stage as well",
)
@click.pass_context
def stage_cli(ctx, work_dir, project_dir, secrets_dir):
    """Stage inaccessible directories and print original -> staged paths."""
    manager = ctx.obj or get_config_manager()

    try:
        config = manager.get_executor_config()
        secrets = SecretsStore()
        if secrets_dir:
            # The store file itself need not exist, only its directory is staged
            secrets = SecretsStore(enabled=True, store_file=Path(secrets_dir) / "store.json")
        executor = OspoolExecutor(
            config,
            Session(work_dir=work_dir, base_dir=project_dir),
            secrets=secrets,
        )
        staging_map = executor.register()
    except OspoolError as e:
        raise click.ClickException(str(e))

    if not staging_map:
        console.print("[yellow]Nothing to stage[/yellow]")
        return

    table = Table(title="Staged Directories", show_header=True, header_style="bold magenta")
    table.add_column("Original", style="cyan")
    table.add_column("Staged", style="green")
    for original, staged in staging_map.items():
        table.add_row(original, staged)
    console.print(table)
