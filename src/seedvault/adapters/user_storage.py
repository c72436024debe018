"""SQLAlchemy access to the application's users table.

The table is reflected, so any schema with `email`, `name`, `password` and
`avatar_url` columns works without importing the application's models.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import MetaData, Table, create_engine, insert, inspect, select, update
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import NoSuchTableError

from seedvault.core.config import AppSettings
from seedvault.core.errors import SchemaPreconditionUnmet
from seedvault.migrations import add_avatar_url_to_users_table as avatar_migration

logger = logging.getLogger(__name__)

AVATAR_COLUMN = avatar_migration.COLUMN_NAME


def create_db_engine(settings: AppSettings | None = None) -> Engine:
    """Engine for `database_url`; creates the directory of a SQLite file if needed."""

    settings = settings or AppSettings()
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url)


def load_users_table(connection: Connection, table_name: str) -> Table:
    try:
        return Table(table_name, MetaData(), autoload_with=connection)
    except NoSuchTableError as exc:
        raise SchemaPreconditionUnmet(f"Table '{table_name}' does not exist") from exc


def has_avatar_column(engine: Engine, table_name: str) -> bool:
    """Check the users table for `avatar_url`.

    Raises `SchemaPreconditionUnmet` when the table itself is missing, since no
    migration shipped here can create it.
    """

    inspector = inspect(engine)
    if not inspector.has_table(table_name):
        raise SchemaPreconditionUnmet(
            f"Table '{table_name}' does not exist; run the application's migrations first"
        )
    return any(column["name"] == AVATAR_COLUMN for column in inspector.get_columns(table_name))


def apply_avatar_migration(engine: Engine, table_name: str) -> bool:
    """Add `avatar_url` to the users table. Returns False when it already exists."""

    if has_avatar_column(engine, table_name):
        return False
    with engine.begin() as connection:
        avatar_migration.upgrade(connection, table_name)
    logger.info("Added %s.%s", table_name, AVATAR_COLUMN)
    return True


def upsert_user(connection: Connection, table: Table, *, email: str, values: dict[str, Any]) -> bool:
    """Update the user with `email`, or insert it. Returns True when inserted.

    Keys without a matching column are dropped with a warning; `created_at`/`updated_at` are
    filled when the table has them.
    """

    row = {key: value for key, value in values.items() if key in table.c}
    dropped = sorted(set(values) - set(row))
    if dropped:
        logger.warning(
            "Table '%s' has no column(s) %s; values dropped for %s", table.name, ", ".join(dropped), email
        )
    now = datetime.now(timezone.utc)
    if "updated_at" in table.c:
        row["updated_at"] = now

    existing = connection.execute(select(table.c.email).where(table.c.email == email)).first()
    if existing is not None:
        connection.execute(update(table).where(table.c.email == email).values(**row))
        logger.debug("Updated user %s", email)
        return False

    if "created_at" in table.c:
        row["created_at"] = now
    connection.execute(insert(table).values(email=email, **row))
    logger.debug("Inserted user %s", email)
    return True
