"""Core configuration.

- Centralizes environment variables (pydantic-settings) away from the CLI.
- Adapters (cipher, seeder files, storage) read the same settings object.
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "seedvault"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "seedvault"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "seedvault"
    return Path.home() / ".config" / "seedvault"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# seedvault user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class SvgRasterizerChoice(str, Enum):
    """Which vector rasterizer the normalizer is wired with."""

    AUTO = "auto"
    CAIROSVG = "cairosvg"
    NONE = "none"


class AppSettings(BaseSettings):
    """Central application settings.

    Relative paths are resolved against the current working directory, which is
    expected to be the root of the application being seeded.
    """

    model_config = SettingsConfigDict(
        env_prefix="SEEDVAULT_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    app_key: str | None = Field(
        default=None,
        description="Fernet key (urlsafe base64, 32 bytes) used to encrypt seed records.",
    )
    database_url: str = Field(
        default="sqlite:///database/database.sqlite",
        min_length=1,
        description="SQLAlchemy URL of the application database.",
    )
    users_table: str = Field(
        default="users",
        min_length=1,
        description="Table holding the application's users.",
    )

    seeder_path: Path = Field(
        default=Path("database/seeders/user_seeder.py"),
        description="Generated seeder module receiving the encrypted records.",
    )
    orchestrator_path: Path = Field(
        default=Path("database/seeders/database_seeder.py"),
        description="Seeder that runs every other seeder (`def run(connection)`).",
    )
    ledger_path: Path | None = Field(
        default=None,
        description="Append-only JSON-lines record store (defaults next to the seeder).",
    )

    storage_root: Path = Field(
        default=Path("storage/app/public"),
        description="Blob storage root where seeded avatars are written.",
    )
    avatar_directory: str = Field(
        default="avatars",
        min_length=1,
        description="Subdirectory of the storage root for avatar files.",
    )

    svg_rasterizer: SvgRasterizerChoice = Field(
        default=SvgRasterizerChoice.AUTO,
        description="SVG rasterizer: auto (cairosvg when importable), cairosvg or none.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Level for the `seedvault` loggers.",
    )

    @property
    def seeder_module_name(self) -> str:
        """Logical name of the generated seeder (file stem)."""

        return self.seeder_path.stem

    def resolved_ledger_path(self) -> Path:
        if self.ledger_path is not None:
            return self.ledger_path
        return self.seeder_path.with_name(f"{self.seeder_path.stem}.records.jsonl")
