"""Avatar normalization.

Reduces an arbitrary avatar file to a fixed 96x96 JPEG, returned as base64.
SVG input is rasterized when a rasterizer is injected; otherwise the markup is
validated and passed through unchanged.
"""

from __future__ import annotations

import base64
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable

from seedvault.core.domain.models import AvatarInput, AvatarKind, NormalizedAvatar
from seedvault.core.errors import AvatarError, AvatarFileNotFound, InvalidImage, InvalidVectorImage
from seedvault.core.interfaces.imaging import RasterBackend, VectorRasterizer

logger = logging.getLogger(__name__)

AVATAR_SIZE: tuple[int, int] = (96, 96)
JPEG_QUALITY = 90
SNIFF_BYTES = 1024

SVG_PASSTHROUGH_WARNING = (
    "No SVG rasterizer available: the avatar is stored as SVG markup and must be "
    "rendered natively by whatever consumes it."
)


def looks_like_vector(head: bytes) -> bool:
    """True when the leading bytes contain an `<svg` root tag or an XML prolog."""

    lowered = head.lower()
    return b"<svg" in lowered or b"<?xml" in lowered


def detect_kind(path: Path, probe: Callable[[Path], str | None] | None = None) -> AvatarKind:
    """Detection order: suffix, then content-type probe, then content sniff.

    `probe` returns the media type recognized from the file content (a raster
    backend's `probe_media_type`). A recognized raster container is trusted
    over the sniff, so XML metadata embedded in a PNG does not make it vector.
    Unreadable files raise `InvalidImage`.
    """

    if path.suffix.lower() == ".svg":
        return AvatarKind.VECTOR

    if probe is not None:
        media_type = probe(path)
        if media_type == "image/svg+xml":
            return AvatarKind.VECTOR
        if media_type is not None:
            return AvatarKind.RASTER

    try:
        with path.open("rb") as fh:
            head = fh.read(SNIFF_BYTES)
    except OSError as exc:
        raise InvalidImage(path, f"cannot read file ({exc})") from exc
    if looks_like_vector(head):
        return AvatarKind.VECTOR
    return AvatarKind.RASTER


def validate_svg_markup(path: Path, markup: bytes) -> None:
    """Reject markup that is not well-formed XML with an `<svg>...</svg>` root."""

    text = markup.decode("utf-8", errors="replace").lower()
    if "<svg" not in text or "</svg>" not in text:
        raise InvalidVectorImage(path, "missing opening or closing <svg> tag")

    try:
        root = ET.fromstring(markup)
    except ET.ParseError as exc:
        raise InvalidVectorImage(path, f"malformed XML ({exc})") from exc

    # "{http://www.w3.org/2000/svg}svg" or plain "svg"
    if root.tag.rsplit("}", 1)[-1].lower() != "svg":
        raise InvalidVectorImage(path, f"root element is <{root.tag}>, expected <svg>")


class AvatarNormalizer:
    """Turns an avatar file into a `NormalizedAvatar`.

    Errors are subclasses of `AvatarError` and concern a single user only.
    """

    def __init__(self, raster: RasterBackend, vector: VectorRasterizer | None = None) -> None:
        self._raster = raster
        self._vector = vector

    def inspect(self, path: Path) -> AvatarInput:
        if not path.is_file():
            raise AvatarFileNotFound(path, "file does not exist")
        return AvatarInput(path=path, kind=detect_kind(path, self._raster.probe_media_type))

    def normalize(self, path: Path) -> NormalizedAvatar:
        avatar = self.inspect(path)
        if avatar.kind is AvatarKind.VECTOR:
            return self._normalize_vector(avatar.path)
        return self._normalize_raster(avatar.path)

    def _normalize_raster(self, path: Path) -> NormalizedAvatar:
        try:
            jpeg = self._raster.thumbnail_jpeg(path, size=AVATAR_SIZE, quality=JPEG_QUALITY)
        except AvatarError:
            raise
        except OSError as exc:
            raise InvalidImage(path, str(exc)) from exc
        return _encode(jpeg, "jpg")

    def _normalize_vector(self, path: Path) -> NormalizedAvatar:
        try:
            markup = path.read_bytes()
        except OSError as exc:
            raise InvalidVectorImage(path, f"cannot read file ({exc})") from exc

        if self._vector is None:
            validate_svg_markup(path, markup)
            logger.warning("%s: %s", path, SVG_PASSTHROUGH_WARNING)
            return _encode(markup, "svg", warnings=(SVG_PASSTHROUGH_WARNING,))

        try:
            png = self._vector.rasterize(markup, size=AVATAR_SIZE)
            jpeg = self._raster.thumbnail_jpeg(png, size=AVATAR_SIZE, quality=JPEG_QUALITY)
        except AvatarError as exc:
            raise InvalidVectorImage(path, exc.reason) from exc
        except Exception as exc:
            # cairosvg surfaces parse errors as assorted exception types.
            raise InvalidVectorImage(path, f"rasterization failed ({exc})") from exc
        return _encode(jpeg, "jpg")


def _encode(data: bytes, extension: str, warnings: tuple[str, ...] = ()) -> NormalizedAvatar:
    return NormalizedAvatar(
        data_base64=base64.b64encode(data).decode("ascii"),
        extension=extension,
        warnings=warnings,
    )
