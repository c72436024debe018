from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from seedvault.adapters.fernet_cipher import FernetRecordCipher, build_cipher
from seedvault.core.config import AppSettings
from seedvault.core.errors import DecryptionFailed, MissingAppKey
from seedvault.core.services.record_builder import build_record, decrypt_record


@pytest.mark.parametrize(
    ("name", "email", "password", "avatar"),
    [
        ("Ada", "ada@example.com", "s3cr3t", "aGVsbG8="),
        ("", "", "", ""),
        ("Zoë Ångström", "zoe@example.org", "pässwörd with spaces", "/9j/4AAQSkZJRg=="),
    ],
)
def test_each_field_round_trips(cipher, name, email, password, avatar) -> None:
    record = build_record(name, email, password, avatar, cipher.encrypt)

    assert cipher.decrypt(record.name) == name
    assert cipher.decrypt(record.email) == email
    assert cipher.decrypt(record.password) == password
    assert cipher.decrypt(record.avatar) == avatar


def test_fields_decrypt_independently_and_out_of_order(cipher) -> None:
    record = build_record("Ada", "ada@example.com", "s3cr3t", "YXZhdGFy", cipher.encrypt)

    assert cipher.decrypt(record.avatar) == "YXZhdGFy"
    assert cipher.decrypt(record.password) == "s3cr3t"
    assert decrypt_record(record, cipher.decrypt).email == "ada@example.com"


def test_encrypt_called_once_per_field() -> None:
    seen: list[str] = []

    def fake_encrypt(value: str) -> str:
        seen.append(value)
        return f"enc({value})"

    record = build_record("n", "e", "p", "a", fake_encrypt)

    assert sorted(seen) == ["a", "e", "n", "p"]
    assert record.model_dump() == {"name": "enc(n)", "email": "enc(e)", "password": "enc(p)", "avatar": "enc(a)"}


def test_no_validation_at_this_layer(cipher) -> None:
    record = build_record("x", "not-an-email", "1", "", cipher.encrypt)

    assert cipher.decrypt(record.email) == "not-an-email"


def test_other_key_cannot_decrypt(cipher) -> None:
    record = build_record("Ada", "ada@example.com", "s3cr3t", "", cipher.encrypt)
    other = FernetRecordCipher(Fernet.generate_key())

    with pytest.raises(DecryptionFailed):
        other.decrypt(record.email)


def test_build_cipher_requires_key() -> None:
    with pytest.raises(MissingAppKey):
        build_cipher(AppSettings(_env_file=None, app_key=None))


def test_build_cipher_rejects_malformed_key() -> None:
    with pytest.raises(MissingAppKey):
        build_cipher(AppSettings(_env_file=None, app_key="not-a-fernet-key"))
