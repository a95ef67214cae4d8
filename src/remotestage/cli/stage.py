"""
remotestage stage - Resolve a remote file to a local cached path.
"""

from pathlib import Path

import typer
from rich.console import Console

from remotestage.exceptions import RemoteStageError
from remotestage.utils.logging import get_logger, setup_logging, setup_logging_from_config

logger = get_logger("remotestage.cli.stage")

console = Console(stderr=True)


def stage(
    remote_path: str = typer.Argument(..., help="Remote file path, e.g. /exports/data.csv"),
    settings_key: str = typer.Option(..., "--settings", "-s", help="Preset name under transfer-credentials"),
    settings_file: Path = typer.Option(Path("settings.yaml"), "--settings-file", "-f", help="Settings YAML file"),
    server: str | None = typer.Option(None, help="Override the preset's server"),
    username: str | None = typer.Option(None, help="Override the preset's username"),
    port: int | None = typer.Option(None, help="Override the preset's port"),
    protocol: str | None = typer.Option(None, help="sftp or ftp"),
    cache_path: str | None = typer.Option(None, "--cache-path", help="Cache directory (relative to storage root)"),
    policy: str = typer.Option("check_freshness", help="always or check_freshness"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Download REMOTE_PATH (or reuse a fresh cached copy) and print the local path.
    """
    from remotestage.api import StagingContext
    from remotestage.config.loader import load_settings

    try:
        settings = load_settings(settings_file)
        if verbose:
            setup_logging(level="DEBUG")
        else:
            setup_logging_from_config(settings.data, project_dir=settings_file.parent)

        configuration = {
            "path": remote_path,
            "settings": settings_key,
            "server": server,
            "username": username,
            "port": port,
            "protocol": protocol,
            "cache_path": cache_path,
            "policy": policy,
        }
        with StagingContext(settings) as ctx:
            local_path = ctx.resolve(configuration)
    except RemoteStageError as e:
        logger.debug("Staging failed", exc_info=True)
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(1) from e

    typer.echo(str(local_path))
