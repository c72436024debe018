"""Append-only JSON-lines store of encrypted seed records.

One `EncryptedUserRecord` per line, in insertion order. The generated seeder
can always be rebuilt from this file, whatever state the module is in.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from seedvault.core.domain.models import EncryptedUserRecord
from seedvault.core.errors import ArtifactWriteFailure, SeedVaultError


class RecordLedger:
    def __init__(self, path: Path) -> None:
        self.path = path

    def append(self, records: Iterable[EncryptedUserRecord]) -> int:
        """Append records (UTF-8, stable key order). Returns how many were written."""

        lines = [
            json.dumps(record.model_dump(mode="json"), ensure_ascii=False, sort_keys=True) + "\n"
            for record in records
        ]
        if not lines:
            return 0
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.writelines(lines)
        except OSError as exc:
            raise ArtifactWriteFailure(self.path, str(exc)) from exc
        return len(lines)

    def read(self) -> list[EncryptedUserRecord]:
        if not self.path.exists():
            return []
        records: list[EncryptedUserRecord] = []
        for number, line in enumerate(self.path.read_text(encoding="utf-8").splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(EncryptedUserRecord.model_validate(json.loads(line)))
            except ValueError as exc:
                raise SeedVaultError(f"{self.path}:{number}: invalid record ({exc})") from exc
        return records
