"""Seed-run helpers.

Generated seeder modules import from here, so these names are a public
surface: `hash_password`, `load_users_table`, `looks_like_vector`,
`upsert_user`, `run_sibling_seeder`.
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import ModuleType

import bcrypt
from sqlalchemy.engine import Connection

from seedvault.adapters.user_storage import create_db_engine, load_users_table, upsert_user
from seedvault.core.config import AppSettings
from seedvault.core.errors import SeedVaultError
from seedvault.core.services.avatar_normalizer import looks_like_vector

logger = logging.getLogger(__name__)

__all__ = [
    "hash_password",
    "load_seeder_module",
    "load_users_table",
    "looks_like_vector",
    "run_seeder_file",
    "run_sibling_seeder",
    "upsert_user",
]

# bcrypt only reads the first 72 bytes; recent releases reject longer input.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    secret = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(secret, bcrypt.gensalt()).decode("utf-8")


def load_seeder_module(path: Path) -> ModuleType:
    """Import a generated seeder from its file path (it is not on sys.path)."""

    if not path.is_file():
        raise SeedVaultError(f"Seeder {path} does not exist; add a user first")
    spec = importlib.util.spec_from_file_location(f"seedvault_seeders.{path.stem}", path)
    if spec is None or spec.loader is None:
        raise SeedVaultError(f"Cannot load seeder {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_sibling_seeder(
    anchor: str | Path,
    filename: str,
    connection: Connection,
    settings: AppSettings | None = None,
) -> int:
    """Run the seeder at `filename`, relative to the directory of `anchor` (usually `__file__`)."""

    module = load_seeder_module(Path(anchor).resolve().parent / filename)
    return module.run(connection, settings)


def run_seeder_file(path: Path, settings: AppSettings | None = None) -> int:
    """Run a generated seeder inside a single transaction on the configured database."""

    settings = settings or AppSettings()
    module = load_seeder_module(path)
    engine = create_db_engine(settings)
    try:
        with engine.begin() as connection:
            count = module.run(connection, settings)
    finally:
        engine.dispose()
    logger.info("Seeded %d user(s) from %s", count, path)
    return count
