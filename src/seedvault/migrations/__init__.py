"""Schema migrations shipped with seedvault, applied through alembic operations."""
