"""CLI entry point (`cluster-enroll`).

`create` prints the encoded token alone on stdout so it can be piped;
diagnostics and errors go to stderr.
"""

from __future__ import annotations

import logging

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from adapters.http_client import HttpxExecutor, build_client
from cli.doctor import app as doctor_app
from cli.ui_components import build_token_panel
from core.config import AppSettings
from core.domain.errors import EnrollmentError, ErrorKind
from core.services.enrollment import EnrollmentTokenGenerator, validate_settings
from core.services.token_codec import encode_token

app = typer.Typer(
    no_args_is_help=True,
    help="Create enrollment tokens that let new nodes and clients join the cluster.",
)
app.add_typer(doctor_app, name="doctor")

_err_console = Console(stderr=True)

# sysexits(3)
EXIT_DATA_ERR = 65
EXIT_UNAVAILABLE = 69
EXIT_CONFIG = 78

_EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.CONFIG: EXIT_CONFIG,
    ErrorKind.KEYSTORE_LOAD: EXIT_CONFIG,
    ErrorKind.KEY_EXTRACTION: EXIT_CONFIG,
    ErrorKind.UNEXPECTED_RESPONSE: EXIT_UNAVAILABLE,
    ErrorKind.RESPONSE_PARSE: EXIT_UNAVAILABLE,
    ErrorKind.ADDRESS_PARSE: EXIT_DATA_ERR,
}


def exit_code_for(exc: EnrollmentError) -> int:
    return _EXIT_CODES[exc.kind]


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )


def build_generator(settings: AppSettings, client: httpx.Client, url: str | None) -> EnrollmentTokenGenerator:
    return EnrollmentTokenGenerator(settings, HttpxExecutor(client), base_url=url)


@app.command()
def create(
    username: str | None = typer.Option(None, "--username", "-u", help="Operator user (defaults to settings)."),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        prompt=True,
        hide_input=True,
        envvar="CLUSTER_ENROLL_PASSWORD",
        help="Operator password.",
    ),
    url: str | None = typer.Option(None, "--url", help="Base URL of the node (defaults to the local node)."),
    details: bool = typer.Option(False, "--details", help="Also print a token summary to stderr."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr."),
) -> None:
    """Create an enrollment token for this cluster."""

    configure_logging(verbose)
    settings = AppSettings()

    try:
        validate_settings(settings)
        with build_client(settings) as client:
            generator = build_generator(settings, client, url)
            token = generator.generate(username or settings.username, password)
    except EnrollmentError as exc:
        _err_console.print(f"[red]ERROR:[/red] {escape(exc.message)}")
        raise typer.Exit(code=exit_code_for(exc)) from exc
    except httpx.HTTPError as exc:
        _err_console.print(f"[red]ERROR:[/red] failed to reach the node: {escape(str(exc))}")
        raise typer.Exit(code=EXIT_UNAVAILABLE) from exc

    if details:
        _err_console.print(build_token_panel(token))
    typer.echo(encode_token(token))


def run() -> None:
    app()
