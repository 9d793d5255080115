"""
Status CLI for ospool - view HTCondor queue state.

Provides the `ospool status` command. The snapshot comes from a single
`condor_q -nobatch` poll, or from a file when troubleshooting a capture.
"""

import json

import click
from rich.console import Console
from rich.table import Table

from .condor import QueueState, condor_q, parse_queue_status

console = Console()

STATE_STYLES = {
    QueueState.PENDING: "yellow",
    QueueState.RUNNING: "blue",
    QueueState.HOLD: "magenta",
    QueueState.DONE: "green",
    QueueState.ERROR: "red",
    QueueState.UNKNOWN: "dim",
}


def _format_state(state: QueueState) -> str:
    style = STATE_STYLES.get(state, "white")
    return f"[{style}]{state.value}[/{style}]"


@click.command(name="status")
@click.option(
    "--input",
    "input_file",
    type=click.File("r"),
    help="Read condor_q -nobatch output from FILE ('-' for stdin) instead of polling",
)
@click.option("--json", "as_json", is_flag=True, help="Print job states as a JSON object")
def status_cli(input_file, as_json):
    """Show the state of every job in the queue."""
    if input_file is not None:
        snapshot = parse_queue_status(input_file.read())
    else:
        snapshot = condor_q()
        if snapshot is None:
            raise click.ClickException("condor_q failed, queue state is unavailable")

    if as_json:
        click.echo(json.dumps({job_id: state.value for job_id, state in snapshot.items()}, indent=2))
        return

    if not snapshot:
        console.print("[yellow]No jobs found[/yellow]")
        return

    table = Table(title="HTCondor Queue", show_header=True, header_style="bold magenta")
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("State", justify="center")

    for job_id, state in snapshot.items():
        table.add_row(job_id, _format_state(state))

    console.print(table)
