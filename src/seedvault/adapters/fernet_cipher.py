"""Fernet (AES-128-CBC + HMAC-SHA256) record cipher bound to the app key."""

from __future__ import annotations

import binascii

from cryptography.fernet import Fernet, InvalidToken

from seedvault.core.config import AppSettings
from seedvault.core.errors import DecryptionFailed, MissingAppKey
from seedvault.core.interfaces.cipher import RecordCipher


def generate_app_key() -> str:
    return Fernet.generate_key().decode("ascii")


class FernetRecordCipher(RecordCipher):
    def __init__(self, key: str | bytes) -> None:
        try:
            self._fernet = Fernet(key)
        except (ValueError, binascii.Error) as exc:
            raise MissingAppKey(
                "SEEDVAULT_APP_KEY is not a valid Fernet key (run `seedvault doctor setup-key`)"
            ) from exc

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise DecryptionFailed("cannot decrypt seed record with the configured app key") from exc


def build_cipher(settings: AppSettings | None = None) -> FernetRecordCipher:
    """Cipher for the configured `SEEDVAULT_APP_KEY`."""

    settings = settings or AppSettings()
    if not settings.app_key:
        raise MissingAppKey("SEEDVAULT_APP_KEY is not set (run `seedvault doctor setup-key`)")
    return FernetRecordCipher(settings.app_key)
