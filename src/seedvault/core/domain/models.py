"""Domain models (Pydantic v2).

Note:
- These models describe *what* a seed record is, not how it is produced or
  stored. Ciphertexts are opaque strings everywhere outside the cipher.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class AvatarKind(str, Enum):
    """Detected kind of an avatar source file."""

    RASTER = "raster"
    VECTOR = "vector"


class AvatarInput(BaseModel):
    """Avatar source for a single normalization call."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        ...,
        description="Source file as given by the operator.",
    )
    kind: AvatarKind = Field(
        ...,
        description="Raster (JPEG/PNG/GIF/...) or vector (SVG).",
    )


class NormalizedAvatar(BaseModel):
    """Normalized avatar ready to be encrypted.

    - `extension == "jpg"`: a 96x96 JPEG (quality 90).
    - `extension == "svg"`: the original markup, unmodified (no rasterizer).
    """

    model_config = ConfigDict(frozen=True)

    data_base64: str = Field(
        ...,
        description="Base64 of the encoded image bytes.",
    )
    extension: str = Field(
        ...,
        pattern=r"^(jpg|svg)$",
        description="File extension matching the encoded bytes.",
    )
    warnings: tuple[str, ...] = Field(
        default=(),
        description="Operator-facing notes (e.g. SVG passed through as-is).",
    )


class EncryptedUserRecord(BaseModel):
    """Four independently encrypted fields of one seeded user.

    Each field decrypts on its own; field order carries no meaning.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Ciphertext of the display name.")
    email: str = Field(..., description="Ciphertext of the email (upsert key).")
    password: str = Field(..., description="Ciphertext of the plaintext password.")
    avatar: str = Field(..., description="Ciphertext of the normalized avatar base64.")


class PlainUserRecord(BaseModel):
    """Decrypted view of an `EncryptedUserRecord` (seed-run only)."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    password: str
    avatar: str


class InjectionResult(BaseModel):
    """Outcome of appending records to the generated seeder module."""

    path: Path
    created: bool = Field(
        default=False,
        description="The artifact did not exist and was rendered from the template.",
    )
    matched: bool = Field(
        default=True,
        description="The records region was found; False means nothing was appended.",
    )
    appended: int = Field(default=0, ge=0)
    first_index: int | None = Field(
        default=None,
        description="Index comment of the first appended entry (1-based).",
    )


class RegistrationResult(str, Enum):
    """Outcome of registering the seeder in the orchestrator."""

    REGISTERED = "registered"
    ALREADY_REGISTERED = "already_registered"
    MISSING = "missing"
    ENTRY_POINT_NOT_FOUND = "entry_point_not_found"
