from __future__ import annotations

import io
import os
from pathlib import Path

import pytest
import sqlalchemy as sa
from cryptography.fernet import Fernet
from PIL import Image

from seedvault.adapters.fernet_cipher import FernetRecordCipher
from seedvault.adapters.imaging import PillowRasterBackend
from seedvault.core.config import AppSettings
from seedvault.core.services.avatar_normalizer import AvatarNormalizer

SVG_MARKUP = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<svg xmlns="http://www.w3.org/2000/svg" width="32" height="32">'
    b'<rect width="32" height="32" fill="#c0ffee"/></svg>\n'
)


def write_image(path: Path, size: tuple[int, int], fmt: str = "PNG") -> Path:
    Image.new("RGB", size, (200, 30, 30)).save(path, format=fmt)
    return path


def noisy_png_bytes(size: tuple[int, int] = (64, 64)) -> bytes:
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def create_users_table(database_url: str, *, with_avatar: bool = False) -> None:
    engine = sa.create_engine(database_url)
    columns = [
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
    ]
    if with_avatar:
        columns.append(sa.Column("avatar_url", sa.String(255), nullable=True))
    sa.Table("users", sa.MetaData(), *columns).create(engine)
    engine.dispose()


@pytest.fixture
def app_key() -> str:
    return Fernet.generate_key().decode("ascii")


@pytest.fixture
def cipher(app_key: str) -> FernetRecordCipher:
    return FernetRecordCipher(app_key)


@pytest.fixture
def normalizer() -> AvatarNormalizer:
    return AvatarNormalizer(PillowRasterBackend(), vector=None)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'app.sqlite'}"


@pytest.fixture
def settings(tmp_path: Path, app_key: str, database_url: str) -> AppSettings:
    return AppSettings(
        _env_file=None,
        app_key=app_key,
        database_url=database_url,
        seeder_path=tmp_path / "database" / "seeders" / "user_seeder.py",
        orchestrator_path=tmp_path / "database" / "seeders" / "database_seeder.py",
        storage_root=tmp_path / "storage",
        svg_rasterizer="none",
    )


@pytest.fixture
def seedvault_env(monkeypatch: pytest.MonkeyPatch, settings: AppSettings, tmp_path: Path) -> AppSettings:
    """Expose `settings` through SEEDVAULT_* variables for CLI tests."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SEEDVAULT_APP_KEY", settings.app_key or "")
    monkeypatch.setenv("SEEDVAULT_DATABASE_URL", settings.database_url)
    monkeypatch.setenv("SEEDVAULT_SEEDER_PATH", str(settings.seeder_path))
    monkeypatch.setenv("SEEDVAULT_ORCHESTRATOR_PATH", str(settings.orchestrator_path))
    monkeypatch.setenv("SEEDVAULT_STORAGE_ROOT", str(settings.storage_root))
    monkeypatch.setenv("SEEDVAULT_SVG_RASTERIZER", "none")
    return settings
