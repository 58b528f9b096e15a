"""agenteval CLI entry point."""

import typer

from agenteval import __version__
from agenteval.cli.run_cmd import run
from agenteval.cli.validate_cmd import validate

app = typer.Typer(
    name="agenteval",
    help="Replay-based evaluation for AI agents",
    no_args_is_help=True,
)

app.command()(run)
app.command()(validate)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"agenteval {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Replay-based evaluation for AI agents."""
