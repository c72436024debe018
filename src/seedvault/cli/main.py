"""seedvault CLI (Typer).

Commands:
- add: prompt for users, normalize avatars, encrypt, inject into the seeder.
- seed: run the generated seeder against the database.
- rebuild: regenerate the seeder module from the record ledger.
- migrate: add the `avatar_url` column to the users table.
- doctor: environment diagnostics and key setup.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from sqlalchemy.exc import SQLAlchemyError

from seedvault.adapters.fernet_cipher import build_cipher
from seedvault.adapters.imaging import build_image_capabilities
from seedvault.adapters.record_ledger import RecordLedger
from seedvault.adapters.seeder_files import SeederFile
from seedvault.adapters.user_storage import apply_avatar_migration, create_db_engine, has_avatar_column
from seedvault.cli import doctor
from seedvault.cli.ui_components import build_batch_table, print_banner, print_status, registration_message
from seedvault.core.config import AppSettings
from seedvault.core.errors import ArtifactWriteFailure, MissingAppKey, SchemaPreconditionUnmet, SeedVaultError
from seedvault.core.services.avatar_normalizer import AvatarNormalizer
from seedvault.core.services.enrollment import EnrollmentHooks, EnrollmentSession, UserInput, persist_batch
from seedvault.core.services.seeding import run_seeder_file

app = typer.Typer(
    no_args_is_help=True,
    help="Encrypted seed users for your application's database.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _configure_logging(level: str) -> None:
    """Route `seedvault.*` loggers to stderr through Rich; the root logger is left alone."""

    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger = logging.getLogger("seedvault")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every step (DEBUG)."),
) -> None:
    settings = AppSettings()
    _configure_logging("DEBUG" if verbose else settings.log_level)


def _ensure_avatar_column(settings: AppSettings) -> None:
    """Hard stop unless the users table has `avatar_url` (offers the migration)."""

    engine = create_db_engine(settings)
    try:
        if has_avatar_column(engine, settings.users_table):
            return
        print_status(_console, "warning", f"Table '{settings.users_table}' has no avatar_url column.")
        if not typer.confirm("Apply the bundled avatar_url migration now?", default=True):
            print_status(_console, "error", "avatar_url is required; aborting.")
            raise typer.Exit(code=1)
        apply_avatar_migration(engine, settings.users_table)
        if not has_avatar_column(engine, settings.users_table):
            print_status(_console, "error", "avatar_url is still missing after the migration.")
            raise typer.Exit(code=1)
        print_status(_console, "success", "avatar_url column added.")
    except SchemaPreconditionUnmet as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)
    except SQLAlchemyError as exc:
        print_status(_console, "error", f"Database check failed: {exc}")
        raise typer.Exit(code=1)
    finally:
        engine.dispose()


def _prompt_avatar(initial: Path | None) -> Path:
    path = initial
    while True:
        if path is None:
            path = Path(typer.prompt("Avatar image path"))
        path = path.expanduser()
        if path.is_file():
            return path
        print_status(_console, "error", f"File not found: {path}")
        path = None


def _prompt_user(name: str | None, email: str | None, avatar: Path | None) -> UserInput:
    name = name or typer.prompt("Name")
    email = email or typer.prompt("Email")
    # Never a flag: keeps passwords out of shell history.
    password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)
    return UserInput(name=name, email=email, password=password, avatar_path=_prompt_avatar(avatar))


def _seed(settings: AppSettings) -> None:
    try:
        count = run_seeder_file(settings.seeder_path, settings)
    except (SeedVaultError, SQLAlchemyError) as exc:
        print_status(_console, "error", f"Seeding failed: {exc}")
        raise typer.Exit(code=1)
    print_status(_console, "success", f"Seeded {count} user(s) from {settings.seeder_path}")


@app.command()
def add(
    name: str | None = typer.Option(None, "--name", help="Display name of the first user."),
    email: str | None = typer.Option(None, "--email", help="Email of the first user (upsert key)."),
    avatar: Path | None = typer.Option(None, "--avatar", help="Avatar image of the first user."),
    seed: bool = typer.Option(False, "--seed", help="Run the seeder right after injecting."),
    multiple: bool = typer.Option(False, "--multiple", "-m", help="Keep adding users until declined."),
) -> None:
    """Add encrypted users to the generated seeder."""

    settings = AppSettings()
    print_banner(_console)
    _ensure_avatar_column(settings)

    try:
        cipher = build_cipher(settings)
    except MissingAppKey as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)

    try:
        capabilities = build_image_capabilities(settings)
    except RuntimeError as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)

    hooks = EnrollmentHooks(
        warning=lambda message: print_status(_console, "warning", message),
        skipped=lambda user, exc: print_status(_console, "error", f"Skipped {user.email!r}: {exc}"),
    )
    session = EnrollmentSession(AvatarNormalizer(capabilities.raster, capabilities.vector), cipher, hooks)

    # Flags only prefill the first user.
    prefill: tuple[str | None, str | None, Path | None] = (name, email, avatar)
    while True:
        user = _prompt_user(*prefill)
        prefill = (None, None, None)
        if session.add(user) is not None:
            print_status(_console, "info", f"Prepared {user.email}")
        if not multiple or not typer.confirm("Add another user?", default=False):
            break

    if not session.records:
        print_status(_console, "warning", "No users were added.")
        return

    try:
        outcome = persist_batch(session.records, settings)
    except ArtifactWriteFailure as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)

    injection = outcome.injection
    if injection.created:
        print_status(_console, "info", f"Created {injection.path}")
    if injection.matched:
        _console.print(build_batch_table(session.emails, injection))
    else:
        print_status(
            _console,
            "warning",
            f"USERS region not found in {injection.path}; nothing appended. "
            "Records were kept in the ledger, run `seedvault rebuild` to regenerate the file.",
        )
    level, message = registration_message(outcome.registration, settings.orchestrator_path)
    print_status(_console, level, message)

    if seed:
        _seed(settings)


@app.command()
def seed() -> None:
    """Decrypt the generated seeder's users and upsert them by email."""

    settings = AppSettings()
    _ensure_avatar_column(settings)
    _seed(settings)


@app.command()
def rebuild(
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite without asking."),
) -> None:
    """Regenerate the seeder module from the record ledger."""

    settings = AppSettings()
    ledger = RecordLedger(settings.resolved_ledger_path())
    try:
        records = ledger.read()
    except SeedVaultError as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)

    seeder = SeederFile(settings.seeder_path)
    current = seeder.entry_count()
    if seeder.path.exists() and not yes:
        described = "an unreadable USERS region" if current is None else f"{current} entr(ies)"
        if not typer.confirm(
            f"{seeder.path} has {described}; replace it with {len(records)} from the ledger?",
            default=False,
        ):
            raise typer.Abort()

    try:
        count = seeder.rebuild(records)
    except ArtifactWriteFailure as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)
    print_status(_console, "success", f"Rebuilt {seeder.path} with {count} user(s)")


@app.command()
def migrate() -> None:
    """Add the nullable `avatar_url` column to the users table."""

    settings = AppSettings()
    engine = create_db_engine(settings)
    try:
        added = apply_avatar_migration(engine, settings.users_table)
    except (SchemaPreconditionUnmet, SQLAlchemyError) as exc:
        print_status(_console, "error", str(exc))
        raise typer.Exit(code=1)
    finally:
        engine.dispose()

    if added:
        print_status(_console, "success", f"Added avatar_url to '{settings.users_table}'")
    else:
        print_status(_console, "info", f"'{settings.users_table}' already has avatar_url")


def run() -> None:
    app()
