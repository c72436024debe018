"""Rich UI components for the CLI.

Kept apart from the commands so tables/panels can be reused.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from seedvault.core.domain.models import InjectionResult, RegistrationResult


def print_banner(console: Console) -> None:
    """Print the welcome banner (interactive commands only)."""

    title = Text("seedvault", style="bold cyan")
    subtitle = Text("Encrypted seed users • 96x96 avatars • upsert by email", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def print_status(console: Console, level: str, message: str) -> None:
    """One human-readable status line: info, success, warning or error."""

    styles = {
        "info": ("cyan", "info"),
        "success": ("green", "ok"),
        "warning": ("yellow", "warning"),
        "error": ("red", "error"),
    }
    style, label = styles.get(level, ("white", level))
    console.print(f"[{style}]{label}:[/{style}] {escape(message)}", highlight=False)


def build_batch_table(emails: list[str], injection: InjectionResult) -> Table:
    """Users injected in this run, with their index comment in the seeder."""

    table = Table(title=f"Seed users → {injection.path}")
    table.add_column("#", style="cyan", no_wrap=True, justify="right")
    table.add_column("Email", style="white")
    table.add_column("Stored as", style="dim")
    first = injection.first_index or 0
    for offset, email in enumerate(emails):
        index = str(first + offset) if injection.appended else "-"
        table.add_row(index, email, "encrypted entry" if injection.appended else "ledger only")
    return table


_REGISTRATION_MESSAGES: dict[RegistrationResult, tuple[str, str]] = {
    RegistrationResult.REGISTERED: ("success", "Registered in {path}"),
    RegistrationResult.ALREADY_REGISTERED: ("info", "Already registered in {path}"),
    RegistrationResult.MISSING: ("warning", "{path} not found; call the seeder yourself or use `seedvault seed`"),
    RegistrationResult.ENTRY_POINT_NOT_FOUND: ("warning", "{path} has no `def run(...)`; seeder not registered"),
}


def registration_message(result: RegistrationResult, path: object) -> tuple[str, str]:
    level, template = _REGISTRATION_MESSAGES[result]
    return level, template.format(path=path)
