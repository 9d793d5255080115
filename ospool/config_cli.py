"""
Configuration CLI for ospool.

Shows the effective executor configuration and where it was loaded from.
"""

from typing import Optional

import click
from omegaconf import OmegaConf
from rich.console import Console
from rich.syntax import Syntax

from .config import get_config_manager
from .config.manager import SECTION
from .errors import OspoolError

console = Console()


@click.group(name="config")
def config_cli():
    """Inspect ospool configuration."""
    pass


@config_cli.command()
@click.option("--plain", is_flag=True, help="Print plain YAML without highlighting")
@click.pass_context
def show(ctx, plain):
    """Show the effective executor configuration as YAML."""
    manager = ctx.obj or get_config_manager()
    try:
        config = manager.get_executor_config()
    except OspoolError as e:
        raise click.ClickException(str(e))

    yaml_str = OmegaConf.to_yaml(OmegaConf.create({SECTION: config.to_dict()}))
    if plain:
        click.echo(yaml_str, nl=False)
    else:
        console.print(Syntax(yaml_str, "yaml", theme="monokai"))


@config_cli.command()
@click.argument("key_path", required=False)
@click.pass_context
def get(ctx, key_path: Optional[str]):
    """Get a raw configuration value by key path (e.g., 'ospool.submit_file_dir')."""
    manager = ctx.obj or get_config_manager()
    value = manager.get_config_value(key_path or SECTION)
    if value is None:
        click.echo(f"Configuration key '{key_path or SECTION}' not found")
        raise click.Abort()
    if OmegaConf.is_config(value):
        click.echo(OmegaConf.to_yaml(value), nl=False)
    else:
        click.echo(value)


@config_cli.command()
@click.pass_context
def files(ctx):
    """List the configuration files consulted, in precedence order."""
    manager = ctx.obj or get_config_manager()
    for label, path in manager.get_config_files().items():
        marker = "*" if path.exists() else " "
        click.echo(f"{marker} {label}: {path}")
