"""Doctor commands: check the node settings before creating a token."""

from __future__ import annotations

from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.markup import escape

from adapters.http_client import HttpxExecutor, build_client
from adapters.node_info import NodeInfoFetcher
from cli.ui_components import build_checks_table
from core.config import AppSettings, setting_key, write_user_env_vars
from core.domain.errors import EnrollmentError
from core.services.enrollment import compute_ca_fingerprint

app = typer.Typer(no_args_is_help=True, help="Settings diagnostics for enrollment token creation.")

_console = Console()


def _check_fingerprint(settings: AppSettings) -> tuple[bool, str]:
    if settings.http_ssl_keystore_path is None:
        return False, f"'{setting_key('http_ssl_keystore_path')}' is not configured"
    try:
        return True, compute_ca_fingerprint(settings)
    except EnrollmentError as exc:
        return False, exc.message


def _check_node(settings: AppSettings, username: str, password: str) -> tuple[bool, str]:
    try:
        with build_client(settings) as client:
            info = NodeInfoFetcher(HttpxExecutor(client)).fetch(settings.default_url(), username, password)
    except (EnrollmentError, httpx.HTTPError) as exc:
        return False, str(exc)
    detail = f"version {info.version}, bound to {', '.join(info.bound_addresses)}"
    if info.publish_address:
        detail += f", published at {info.publish_address}"
    return True, detail


@app.command()
def run(
    password: str | None = typer.Option(
        None,
        "--password",
        "-p",
        envvar="CLUSTER_ENROLL_PASSWORD",
        help="Operator password; when set, the node is also contacted.",
    ),
) -> None:
    """Run settings checks. Never creates an API key."""

    settings = AppSettings()

    table = build_checks_table("cluster-enroll doctor")
    for flag in ("security_enabled", "http_ssl_enabled", "enrollment_enabled"):
        enabled = bool(getattr(settings, flag))
        table.add_row(setting_key(flag), "OK" if enabled else "FAIL", "enabled" if enabled else "must be enabled")

    ok_fgr, detail_fgr = _check_fingerprint(settings)
    table.add_row("HTTP CA fingerprint", "OK" if ok_fgr else "FAIL", escape(detail_fgr))

    if password:
        ok_node, detail_node = _check_node(settings, settings.username, password)
        table.add_row("Node HTTP info", "OK" if ok_node else "FAIL", escape(detail_node))
    else:
        table.add_row("Node HTTP info", "SKIPPED", "pass --password to contact the node")

    _console.print(table)


@app.command()
def setup() -> None:
    """Interactive setup of the HTTP layer keystore (stored in the user config .env)."""

    keystore = typer.prompt("HTTP layer keystore path (.p12)").strip()
    keystore_password = typer.prompt("Keystore password", hide_input=True, default="", show_default=False)
    host = typer.prompt("Node HTTP host", default="localhost", show_default=True).strip()
    port = typer.prompt("Node HTTP port", default=9200, type=int, show_default=True)

    if not keystore:
        raise typer.BadParameter("keystore path is required")
    if Path(keystore).suffix.lower() not in (".p12", ".pfx", ".pkcs12"):
        _console.print("[yellow]Only PKCS12 keystores can be fingerprinted.[/yellow]")

    env_path = write_user_env_vars(
        {
            "CLUSTER_ENROLL_SECURITY_ENABLED": "true",
            "CLUSTER_ENROLL_HTTP_SSL_ENABLED": "true",
            "CLUSTER_ENROLL_ENROLLMENT_ENABLED": "true",
            "CLUSTER_ENROLL_HTTP_SSL_KEYSTORE_PATH": keystore,
            "CLUSTER_ENROLL_HTTP_SSL_KEYSTORE_PASSWORD": keystore_password,
            "CLUSTER_ENROLL_HTTP_HOST": host,
            "CLUSTER_ENROLL_HTTP_PORT": str(port),
        }
    )

    _console.print(f"[green]Saved settings to:[/green] {escape(str(env_path))}")
