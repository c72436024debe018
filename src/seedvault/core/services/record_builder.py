"""Encrypted record building.

Each field goes through the cipher on its own: no field depends on another,
so the seed run can decrypt them independently and in any order.
"""

from __future__ import annotations

from typing import Callable

from seedvault.core.domain.models import EncryptedUserRecord, PlainUserRecord

Transform = Callable[[str], str]


def build_record(
    name: str,
    email: str,
    password: str,
    avatar_base64: str,
    encrypt: Transform,
) -> EncryptedUserRecord:
    """Encrypt the four plaintext fields into an `EncryptedUserRecord`.

    No validation happens here (email format and password strength belong to
    the caller).
    """

    return EncryptedUserRecord(
        name=encrypt(name),
        email=encrypt(email),
        password=encrypt(password),
        avatar=encrypt(avatar_base64),
    )


def decrypt_record(record: EncryptedUserRecord, decrypt: Transform) -> PlainUserRecord:
    return PlainUserRecord(
        email=decrypt(record.email),
        name=decrypt(record.name),
        password=decrypt(record.password),
        avatar=decrypt(record.avatar),
    )
