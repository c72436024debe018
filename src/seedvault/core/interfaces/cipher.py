"""Reversible transform applied to every seed record field."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RecordCipher(Protocol):
    """Authenticated, reversible string encryption.

    `decrypt(encrypt(x)) == x` for every string, including the empty one.
    """

    def encrypt(self, plaintext: str) -> str:
        ...

    def decrypt(self, ciphertext: str) -> str:
        ...
