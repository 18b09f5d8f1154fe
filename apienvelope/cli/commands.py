"""CLI commands for apienvelope.

Registers the envelope commands (open, success, error, result) and the
config command group.
"""

import json
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from apienvelope import __logo__, __version__
from apienvelope.cli.command_groups.config_commands import register_config_commands
from apienvelope.codec import open_envelope, send_error, send_result, send_success
from apienvelope.config import Config, get_config
from apienvelope.errors import EncodeError, EnvelopeError, WrappedError, render_error, wrap_error
from apienvelope.logging_utils import configure_logging

app = typer.Typer(
    name="apienvelope",
    help=f"{__logo__} apienvelope - JSON request/response envelopes",
    no_args_is_help=True,
)

console = Console()
register_config_commands(app, console)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} apienvelope v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """apienvelope - JSON request/response envelopes."""
    if ctx.invoked_subcommand == "config":
        # The config helpers must still run when the file itself is broken.
        try:
            cfg = get_config()
        except ValueError:
            cfg = Config.model_construct()
        configure_logging(cfg, verbose=verbose)
        return
    configure_logging(_load_config(), verbose=verbose)


def _load_config() -> Config:
    try:
        return get_config()
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _fail(err: BaseException) -> None:
    console.print(f"[red]Error:[/red] {escape(render_error(err))}")
    raise typer.Exit(1)


def _emit(send, value) -> None:
    """Write one response envelope to the binary stdout."""
    stream = typer.get_binary_stream("stdout")
    try:
        send(stream, value, config=_load_config())
    except EncodeError as e:
        _fail(e)
    stream.flush()


# ============================================================================
# Request envelopes
# ============================================================================


@app.command("open")
def open_command(
    path: str = typer.Argument("-", help="Envelope file, or - to read stdin"),
    body_only: bool = typer.Option(False, "--body-only", help="Print only the raw body"),
):
    """Decode a request envelope and print its method and body."""
    try:
        if path == "-":
            envelope = open_envelope(typer.get_binary_stream("stdin"))
        else:
            with open(Path(path).expanduser(), "rb") as f:
                envelope = open_envelope(f)
    except (OSError, EnvelopeError) as e:
        _fail(e)

    logger.debug("Opened envelope method={!r} body_bytes={}", envelope.method, len(envelope.body or b""))
    body = envelope.body.decode("utf-8", "replace") if envelope.body is not None else ""
    if body_only:
        typer.echo(body)
        return
    typer.echo(f"method: {envelope.method}")
    typer.echo(f"body: {body}")


# ============================================================================
# Response envelopes
# ============================================================================


@app.command("success")
def success_command(
    message: str = typer.Argument(..., help="Informational message"),
):
    """Write an OK envelope carrying a message."""
    _emit(send_success, message)


@app.command("error")
def error_command(
    message: str = typer.Argument(..., help="Root error message"),
    context: Optional[List[str]] = typer.Option(
        None, "--context", "-c", help="Context wrapping the error, outermost first (repeatable)"
    ),
):
    """Write an Error envelope; contexts are joined to the message with ': '."""
    err: BaseException = WrappedError(message)
    for ctx in reversed(context or []):
        err = wrap_error(err, ctx)
    _emit(send_error, err)


@app.command("result")
def result_command(
    body: str = typer.Argument("-", help="JSON body, or - to read stdin"),
):
    """Write an OK envelope carrying a JSON body."""
    raw = typer.get_binary_stream("stdin").read() if body == "-" else body.encode("utf-8")
    try:
        value = json.loads(raw)
    except ValueError as e:
        _fail(e)
    _emit(send_result, value)
