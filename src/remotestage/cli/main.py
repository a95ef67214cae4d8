"""
Main CLI entry point.
"""

import typer

from remotestage import __version__
from remotestage.cli import stage


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"remotestage version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="remotestage",
    help="remotestage - Stage remote CSV files into a local freshness-checked cache",
    add_completion=False,
)

app.command(name="stage", help="Stage a remote file into the local cache")(stage.stage)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    remotestage - Stage remote CSV files into a local freshness-checked cache.

    Run 'remotestage <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
