"""Doctor command for environment diagnostics."""

from __future__ import annotations

import PIL
import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from seedvault.adapters.fernet_cipher import FernetRecordCipher, generate_app_key
from seedvault.adapters.imaging import build_image_capabilities
from seedvault.adapters.record_ledger import RecordLedger
from seedvault.adapters.seeder_files import OrchestratorFile, SeederFile
from seedvault.adapters.user_storage import create_db_engine, has_avatar_column
from seedvault.core.config import AppSettings, write_user_env_vars
from seedvault.core.errors import MissingAppKey, SeedVaultError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_key(settings: AppSettings) -> tuple[str, str]:
    if not settings.app_key:
        return "MISSING", "Run `seedvault doctor setup-key`"
    try:
        cipher = FernetRecordCipher(settings.app_key)
    except MissingAppKey as exc:
        return "FAIL", str(exc)
    if cipher.decrypt(cipher.encrypt("doctor")) != "doctor":
        return "FAIL", "Round-trip mismatch"
    return "OK", "Fernet key loaded"


def _check_database(settings: AppSettings) -> tuple[str, str]:
    engine = create_db_engine(settings)
    try:
        if has_avatar_column(engine, settings.users_table):
            return "OK", f"'{settings.users_table}' has avatar_url"
        return "FAIL", "avatar_url missing -> `seedvault migrate`"
    except (SeedVaultError, SQLAlchemyError) as exc:
        return "FAIL", str(exc)
    finally:
        engine.dispose()


def _check_seeder(settings: AppSettings) -> tuple[str, str]:
    seeder = SeederFile(settings.seeder_path)
    if not seeder.path.exists():
        return "PENDING", f"{seeder.path} is created by the first `seedvault add`"
    count = seeder.entry_count()
    if count is None:
        return "FAIL", "USERS region not found -> `seedvault rebuild`"
    return "OK", f"{count} entr(ies) in {seeder.path}"


def _check_orchestrator(settings: AppSettings) -> tuple[str, str]:
    orchestrator = OrchestratorFile(settings.orchestrator_path)
    if not orchestrator.path.exists():
        return "OPTIONAL", f"{orchestrator.path} not found"
    if orchestrator.is_registered(settings.seeder_path):
        return "OK", f"Calls {settings.seeder_module_name}"
    return "PENDING", "Registered by the next `seedvault add`"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="seedvault doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("App key", *_check_key(settings))

    try:
        capabilities = build_image_capabilities(settings)
    except RuntimeError as exc:
        table.add_row("SVG rasterizer", "FAIL", str(exc))
    else:
        table.add_row("Raster backend", "OK", f"{capabilities.raster.name} {PIL.__version__}")
        if capabilities.vector is not None:
            table.add_row("SVG rasterizer", "OK", capabilities.vector.name)
        else:
            table.add_row("SVG rasterizer", "OPTIONAL", "Not available -> SVG avatars stored as markup")

    table.add_row("Database", *_check_database(settings))
    table.add_row("Seeder", *_check_seeder(settings))

    ledger_path = settings.resolved_ledger_path()
    try:
        ledger_count = len(RecordLedger(ledger_path).read())
        table.add_row("Ledger", "OK", f"{ledger_count} record(s) in {ledger_path}")
    except SeedVaultError as exc:
        table.add_row("Ledger", "FAIL", str(exc))

    table.add_row("Orchestrator", *_check_orchestrator(settings))

    _console.print(table)


@app.command(name="setup-key")
def setup_key(
    show: bool = typer.Option(False, "--show", help="Print a new key instead of saving it."),
) -> None:
    """Generate a Fernet app key and store it in the user config .env."""

    key = generate_app_key()
    if show:
        _console.print(f"SEEDVAULT_APP_KEY={key}", highlight=False)
        return

    settings = AppSettings()
    if settings.app_key:
        _console.print(
            "[yellow]A key is already configured.[/yellow] Records encrypted with it "
            "cannot be decrypted with a new one."
        )
        if not typer.confirm("Replace it?", default=False):
            raise typer.Abort()

    env_path = write_user_env_vars({"SEEDVAULT_APP_KEY": key})
    _console.print(f"[green]Saved app key to:[/green] {env_path}")
