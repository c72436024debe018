"""User enrollment flow: normalize, encrypt, inject.

The CLI owns prompting and printing; this module owns the sequence. Per-user
failures are reported through hooks and the batch continues without that user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from seedvault.adapters.record_ledger import RecordLedger
from seedvault.adapters.seeder_files import OrchestratorFile, SeederFile
from seedvault.core.config import AppSettings
from seedvault.core.domain.models import EncryptedUserRecord, InjectionResult, RegistrationResult
from seedvault.core.errors import AvatarError, SeedVaultError
from seedvault.core.interfaces.cipher import RecordCipher
from seedvault.core.services.avatar_normalizer import AvatarNormalizer
from seedvault.core.services.record_builder import build_record

logger = logging.getLogger(__name__)


@dataclass
class UserInput:
    """Plaintext answers for one user (never persisted as-is)."""

    name: str
    email: str
    password: str = field(repr=False)
    avatar_path: Path


@dataclass
class EnrollmentHooks:
    """Optional callbacks for UI layers."""

    warning: Callable[[str], None] | None = None
    skipped: Callable[[UserInput, Exception], None] | None = None


@dataclass
class BatchOutcome:
    injection: InjectionResult
    ledger_count: int
    registration: RegistrationResult


class EnrollmentSession:
    """Collects encrypted records for one CLI invocation, then persists them."""

    def __init__(
        self,
        normalizer: AvatarNormalizer,
        cipher: RecordCipher,
        hooks: EnrollmentHooks | None = None,
    ) -> None:
        self._normalizer = normalizer
        self._cipher = cipher
        self._hooks = hooks or EnrollmentHooks()
        self.records: list[EncryptedUserRecord] = []
        self.emails: list[str] = []

    def _warn(self, message: str) -> None:
        if self._hooks.warning:
            self._hooks.warning(message)

    def _skip(self, user: UserInput, exc: Exception) -> None:
        logger.info("Skipping %r: %s", user.email, exc)
        if self._hooks.skipped:
            self._hooks.skipped(user, exc)
        return None

    def add(self, user: UserInput) -> EncryptedUserRecord | None:
        """Normalize and encrypt one user. Returns None when the user is skipped."""

        try:
            avatar = self._normalizer.normalize(user.avatar_path)
        except AvatarError as exc:
            return self._skip(user, exc)

        for note in avatar.warnings:
            self._warn(note)

        try:
            record = build_record(
                user.name,
                user.email,
                user.password,
                avatar.data_base64,
                self._cipher.encrypt,
            )
        except (SeedVaultError, ValueError) as exc:
            # UnicodeEncodeError (lone surrogates from the terminal) is a ValueError.
            return self._skip(user, exc)
        self.records.append(record)
        self.emails.append(user.email)
        return record


def persist_batch(records: list[EncryptedUserRecord], settings: AppSettings) -> BatchOutcome:
    """Inject `records` into the seeder, log them to the ledger, register the seeder.

    `ArtifactWriteFailure` propagates; a missing USERS region or orchestrator
    only shows up in the returned outcome.
    """

    seeder = SeederFile(settings.seeder_path)
    injection = seeder.append(records)
    ledger_count = RecordLedger(settings.resolved_ledger_path()).append(records)
    registration = OrchestratorFile(settings.orchestrator_path).register(settings.seeder_path)
    return BatchOutcome(injection=injection, ledger_count=ledger_count, registration=registration)
