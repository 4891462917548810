"""Rich components for the CLI.

Kept apart from the commands so tables and panels can be reused.
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import EnrollmentToken


def build_checks_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    return table


def build_token_panel(token: EnrollmentToken) -> Panel:
    """Summary of a token. The credential is never shown."""

    body = Text()
    body.append("Version: ", style="bold")
    body.append(f"{token.version}\n")
    body.append("CA fingerprint (SHA-1): ", style="bold")
    body.append(f"{token.fingerprint}\n")
    body.append("Addresses:\n", style="bold")
    for address in token.addresses:
        body.append(f"- {address}\n")

    return Panel(body, title=Text("Enrollment token", style="bold cyan"), border_style="cyan")
