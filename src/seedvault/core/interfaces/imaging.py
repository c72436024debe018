"""Image capability contracts.

Providers are selected once from configuration and injected into the
normalizer, which never probes for installed libraries itself.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class RasterBackend(Protocol):
    """Decodes raster containers and encodes square JPEG thumbnails.

    Rules:
    - `source` is a file path or an in-memory encoded image.
    - The output is always exactly `size` pixels, aspect ratio is not kept.
    - Raises `UnsupportedFormat` for unknown containers and `InvalidImage` for
      corrupt data.
    """

    name: str

    def thumbnail_jpeg(self, source: Path | bytes, *, size: tuple[int, int], quality: int) -> bytes:
        ...

    def probe_media_type(self, path: Path) -> str | None:
        """Media type identified from the file content, or None when unrecognized."""
        ...


@runtime_checkable
class VectorRasterizer(Protocol):
    """Renders SVG markup to PNG bytes (transparency allowed)."""

    name: str

    def rasterize(self, markup: bytes, *, size: tuple[int, int]) -> bytes:
        ...
