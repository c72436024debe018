"""add_avatar_url_to_users_table

Adds the nullable `avatar_url` column the generated seeder writes to.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection

COLUMN_NAME = "avatar_url"


def _operations(connection: Connection) -> Operations:
    return Operations(MigrationContext.configure(connection))


def upgrade(connection: Connection, table_name: str = "users") -> None:
    op = _operations(connection)
    op.add_column(table_name, sa.Column(COLUMN_NAME, sa.String(255), nullable=True))


def downgrade(connection: Connection, table_name: str = "users") -> None:
    op = _operations(connection)
    with op.batch_alter_table(table_name) as batch_op:
        batch_op.drop_column(COLUMN_NAME)
