"""Image backends (Pillow, cairosvg).

Implements `core.interfaces.imaging`. `build_image_capabilities` is the only
place that decides which providers exist; it runs once per CLI invocation.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

try:
    import cairosvg  # type: ignore
except (ImportError, OSError):  # pragma: no cover - depends on libcairo
    cairosvg = None  # type: ignore

from seedvault.core.config import AppSettings, SvgRasterizerChoice
from seedvault.core.errors import InvalidImage, UnsupportedFormat
from seedvault.core.interfaces.imaging import RasterBackend, VectorRasterizer

logger = logging.getLogger(__name__)

_WHITE = (255, 255, 255)
_IN_MEMORY = Path("<memory>")


def _flatten_on_white(img: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency onto white."""

    has_alpha = img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)
    if not has_alpha:
        return img.convert("RGB")
    rgba = img.convert("RGBA")
    background = Image.new("RGB", rgba.size, _WHITE)
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


class PillowRasterBackend(RasterBackend):
    """Pillow decoder/encoder (JPEG, PNG, GIF, WebP, BMP, ...)."""

    name = "pillow"

    def probe_media_type(self, path: Path) -> str | None:
        # Header only; pixel data is not decoded here.
        try:
            with Image.open(path) as img:
                return img.get_format_mimetype()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
            return None

    def thumbnail_jpeg(self, source: Path | bytes, *, size: tuple[int, int], quality: int) -> bytes:
        label = _IN_MEMORY if isinstance(source, bytes) else source
        stream = io.BytesIO(source) if isinstance(source, bytes) else source
        try:
            with Image.open(stream) as img:
                width, height = img.size
                if width <= 0 or height <= 0:
                    raise InvalidImage(label, "image dimensions cannot be read")
                # First frame only for animated GIF/WebP.
                oriented = ImageOps.exif_transpose(img)
                rgb = _flatten_on_white(oriented)
        except UnidentifiedImageError as exc:
            raise UnsupportedFormat(label, "no codec recognizes this image container") from exc
        except Image.DecompressionBombError as exc:
            raise InvalidImage(label, str(exc)) from exc
        except (OSError, SyntaxError, ValueError) as exc:
            raise InvalidImage(label, f"corrupt or truncated image ({exc})") from exc

        thumb = rgb.resize(size, Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        thumb.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()


class CairoSvgRasterizer(VectorRasterizer):
    """cairosvg renderer, supersampled so the final Lanczos resize has detail."""

    name = "cairosvg"

    def __init__(self, supersample: int = 4) -> None:
        if cairosvg is None:
            raise RuntimeError("cairosvg is not installed (pip install 'user-seed-vault[svg]')")
        self._supersample = supersample

    def rasterize(self, markup: bytes, *, size: tuple[int, int]) -> bytes:
        width, height = size
        return cairosvg.svg2png(
            bytestring=markup,
            output_width=width * self._supersample,
            output_height=height * self._supersample,
        )


@dataclass(frozen=True)
class ImageCapabilities:
    """Providers selected for this run."""

    raster: RasterBackend
    vector: VectorRasterizer | None

    def describe(self) -> dict[str, str]:
        return {
            "raster": self.raster.name,
            "vector": self.vector.name if self.vector else "none (SVG passed through)",
        }


def cairosvg_available() -> bool:
    return cairosvg is not None


def build_image_capabilities(settings: AppSettings | None = None) -> ImageCapabilities:
    """Select image providers from configuration.

    - `auto`: cairosvg when importable, otherwise SVG pass-through.
    - `cairosvg`: required; raises when it cannot be imported.
    - `none`: always pass SVG through.
    """

    settings = settings or AppSettings()
    choice = settings.svg_rasterizer

    vector: VectorRasterizer | None = None
    if choice is SvgRasterizerChoice.CAIROSVG:
        vector = CairoSvgRasterizer()
    elif choice is SvgRasterizerChoice.AUTO and cairosvg_available():
        vector = CairoSvgRasterizer()

    capabilities = ImageCapabilities(raster=PillowRasterBackend(), vector=vector)
    logger.debug("Image capabilities: %s", capabilities.describe())
    return capabilities
