"""Error hierarchy shared by the core services and adapters.

The CLI decides which of these stop a run. Avatar errors are per-user and
never abort a batch.
"""

from __future__ import annotations

from pathlib import Path


class SeedVaultError(Exception):
    """Base class for every error raised by seedvault."""


class AvatarError(SeedVaultError):
    """Avatar could not be normalized; the user is skipped."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class AvatarFileNotFound(AvatarError):
    pass


class InvalidImage(AvatarError):
    pass


class UnsupportedFormat(AvatarError):
    pass


class InvalidVectorImage(AvatarError):
    pass


class MissingAppKey(SeedVaultError):
    """No usable encryption key is configured."""


class DecryptionFailed(SeedVaultError):
    """Ciphertext was not produced with the configured key (or was tampered with)."""


class ArtifactWriteFailure(SeedVaultError):
    """A generated artifact (or its directory) could not be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path
        self.reason = reason


class SchemaPreconditionUnmet(SeedVaultError):
    """The users table is missing or lacks the `avatar_url` column."""
