"""CLI interface for linear-tui."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from linear_tui import __version__
from linear_tui.auth.session import API_KEY_ENV, CredentialStore, Session, SessionProvider, UnauthenticatedError
from linear_tui.config import Config, get_config_dir
from linear_tui.ui.tui import LinearTUI

app = typer.Typer(
    name="linear-tui",
    help="Browse and filter Linear issues in the terminal.",
)
console = Console()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Config file (default: ~/.linear-tui/config.yaml)"),
]
ProfileOption = Annotated[
    str | None,
    typer.Option("--profile", help="Credential profile (overrides the config file)"),
]


def _load_config(config_path: Path | None, profile: str | None = None) -> Config:
    """Load config, reporting validation errors and exiting non-zero."""
    try:
        config = Config.load(config_path)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e
    if profile:
        config = config.model_copy(update={"profile": profile})
    return config


def _configure_logging(config: Config) -> None:
    """Send logs to the configured file; the terminal belongs to the dashboard."""
    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.log_level)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"linear-tui {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: ConfigOption = None,
    profile: ProfileOption = None,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit"),
    ] = False,
) -> None:
    """Run the dashboard when no command is given."""
    if ctx.invoked_subcommand is None:
        tui(config_path=config_path, profile=profile)


@app.command()
def tui(
    config_path: ConfigOption = None,
    profile: ProfileOption = None,
) -> None:
    """Open the issue dashboard."""
    config = _load_config(config_path, profile)
    _configure_logging(config)
    sessions = SessionProvider(CredentialStore(get_config_dir()), config.profile)
    try:
        sessions.current_session()
    except UnauthenticatedError as e:
        console.print(f"[red]{e}[/red]")
        console.print(f"[dim]Set {API_KEY_ENV} or run `linear-tui login --api-key <key>`.[/dim]")
        raise typer.Exit(1) from e

    logging.getLogger(__name__).info(f"Starting dashboard (profile '{config.profile}')")
    LinearTUI(config, sessions).run()


@app.command()
def login(
    api_key: Annotated[
        str,
        typer.Option("--api-key", prompt="Linear API key", hide_input=True, help="Personal API key"),
    ],
    config_path: ConfigOption = None,
    profile: ProfileOption = None,
) -> None:
    """Store an API key for a profile."""
    config = _load_config(config_path, profile)
    api_key = api_key.strip()
    if not api_key:
        console.print("[red]API key must not be empty[/red]")
        raise typer.Exit(1)
    path = CredentialStore(get_config_dir()).save(config.profile, Session.from_api_key(api_key))
    console.print(f"[green]Saved credentials for profile '{config.profile}'[/green] [dim]({path})[/dim]")


@app.command()
def logout(
    config_path: ConfigOption = None,
    profile: ProfileOption = None,
) -> None:
    """Remove stored credentials for a profile."""
    config = _load_config(config_path, profile)
    if CredentialStore(get_config_dir()).delete(config.profile):
        console.print(f"[green]Removed credentials for profile '{config.profile}'[/green]")
    else:
        console.print(f"[yellow]No stored credentials for profile '{config.profile}'[/yellow]")


@app.command("config-show")
def config_show(
    config_path: ConfigOption = None,
    profile: ProfileOption = None,
) -> None:
    """Print the effective configuration."""
    config = _load_config(config_path, profile)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in config.model_dump(mode="json").items():
        table.add_row(name, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
