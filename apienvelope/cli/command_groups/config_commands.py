"""Config command group."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.markup import escape

from apienvelope.config import Config, get_config, get_config_path, save_config
from apienvelope.config.loader import convert_to_camel


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register the config command group."""
    config_app = typer.Typer(help="Config helpers (show/path/init)")
    app.add_typer(config_app, name="config")

    @config_app.command("show")
    def config_show() -> None:
        """Print the effective configuration as JSON."""
        try:
            cfg = get_config()
        except ValueError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)
        typer.echo(json.dumps(convert_to_camel(cfg.model_dump()), indent=2, ensure_ascii=False))

    @config_app.command("path")
    def config_path() -> None:
        """Print the config file location."""
        typer.echo(str(get_config_path()))

    @config_app.command("init")
    def config_init(
        force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
    ) -> None:
        """Write a config file with default values."""
        path = get_config_path()
        if path.exists() and not force:
            console.print(f"[yellow]Config already exists:[/yellow] {path}")
            raise typer.Exit(1)
        save_config(Config(), path)
        console.print(f"[green]✓[/green] Wrote {path}")
