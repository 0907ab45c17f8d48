"""PNG pixel codecs behind the tile codec boundary.

Header parsing and validation happen in :mod:`tilemip.codec.png`; the
backends here only turn validated PNG bytes into pixel arrays and back.

- ``PillowBackend`` (default): pure wheel install, no system libraries.
- ``VIPSBackend``: libvips via pyvips, faster on large batches but needs
  libvips installed on the host.

Usage:
    from tilemip.codec.backends import get_backend

    backend = get_backend("pillow")
    pixels = backend.decode_png(data, path)
    data = backend.encode_png(buffer, compress_level=6)
"""

from __future__ import annotations

import io
from typing import Any

import numpy as np
from PIL import Image

from tilemip import config
from tilemip.core.errors import FormatError
from tilemip.core.raster import RasterBuffer

_HAS_VIPS = False
_vips_import_error: str | None = None
pyvips: Any = None

try:
    import pyvips
    _HAS_VIPS = True
except (ImportError, OSError) as e:
    _vips_import_error = str(e)


def is_vips_available() -> bool:
    """Check if PyVIPS is available.

    Returns:
        True if pyvips is installed and working
    """
    return _HAS_VIPS


def get_vips_import_error() -> str | None:
    """Get the error message if PyVIPS failed to import.

    Returns:
        Error message string, or None if pyvips is available
    """
    return _vips_import_error


class PillowBackend:
    """Pillow-based PNG pixel codec."""

    name = "pillow"

    @staticmethod
    def decode_png(data: bytes, path: object = None) -> np.ndarray:
        """Decode PNG bytes into a (H, W, bands) uint8 array.

        Args:
            data: Complete PNG file contents
            path: Source path, used in error messages only

        Returns:
            Writable numpy array of the decoded pixels

        Raises:
            FormatError: If the pixel data cannot be decoded
        """
        try:
            with Image.open(io.BytesIO(data), formats=["PNG"]) as img:
                img.load()
                pixels = np.array(img, dtype=np.uint8)
        except (OSError, EOFError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise FormatError(f"unable to decode PNG data ({e})", path) from e

        if pixels.ndim == 2:
            pixels = pixels[:, :, np.newaxis]
        return pixels

    @staticmethod
    def encode_png(buffer: RasterBuffer, compress_level: int | None = None) -> bytes:
        """Encode a raster buffer as 8-bit PNG bytes.

        Args:
            buffer: Pixels to encode
            compress_level: zlib level 0-9 (default: config.PNG_COMPRESS_LEVEL)

        Raises:
            FormatError: If Pillow cannot produce a PNG stream
        """
        if compress_level is None:
            compress_level = config.PNG_COMPRESS_LEVEL

        out = io.BytesIO()
        try:
            img = Image.frombytes(
                buffer.format.pil_mode, (buffer.width, buffer.height), buffer.tobytes()
            )
            img.save(out, format="PNG", compress_level=compress_level)
        except (OSError, ValueError) as e:
            raise FormatError(f"unable to encode PNG data ({e})") from e
        return out.getvalue()


class VIPSBackend:
    """PyVIPS-based PNG pixel codec.

    Requires pyvips to be installed: pip install pyvips
    """

    name = "vips"

    @staticmethod
    def decode_png(data: bytes, path: object = None) -> np.ndarray:
        """Decode PNG bytes into a (H, W, bands) uint8 array.

        Raises:
            RuntimeError: If pyvips is not available
            FormatError: If libvips rejects the pixel data
        """
        if not _HAS_VIPS:
            raise RuntimeError(f"PyVIPS is not available: {_vips_import_error}")

        try:
            image = pyvips.Image.new_from_buffer(data, "", access="sequential")
            if image.format != "uchar":
                raise FormatError(
                    f"unexpected sample format {image.format!r} in PNG data", path
                )
            memory = image.write_to_memory()
        except pyvips.error.Error as e:
            raise FormatError(f"unable to decode PNG data ({e})", path) from e

        return np.ndarray(
            buffer=memory,
            dtype=np.uint8,
            shape=(image.height, image.width, image.bands),
        ).copy()

    @staticmethod
    def encode_png(buffer: RasterBuffer, compress_level: int | None = None) -> bytes:
        """Encode a raster buffer as 8-bit PNG bytes.

        Raises:
            RuntimeError: If pyvips is not available
            FormatError: If libvips cannot produce a PNG stream
        """
        if not _HAS_VIPS:
            raise RuntimeError(f"PyVIPS is not available: {_vips_import_error}")
        if compress_level is None:
            compress_level = config.PNG_COMPRESS_LEVEL

        interpretation = "srgb" if buffer.format.channels == 4 else "b-w"
        try:
            image = pyvips.Image.new_from_memory(
                buffer.tobytes(),
                buffer.width,
                buffer.height,
                buffer.format.channels,
                "uchar",
            ).copy(interpretation=interpretation)
            return image.write_to_buffer(".png", compression=compress_level)
        except pyvips.error.Error as e:
            raise FormatError(f"unable to encode PNG data ({e})") from e


def get_backend(name: str | None = None) -> type[PillowBackend] | type[VIPSBackend]:
    """Get a PNG pixel codec backend.

    Args:
        name: "pillow" or "vips" (default: config.CODEC_BACKEND)

    Returns:
        Backend class

    Raises:
        ValueError: If the name is unknown
        RuntimeError: If "vips" is requested but PyVIPS is not available
    """
    name = (name or config.CODEC_BACKEND).strip().lower()
    if name == PillowBackend.name:
        return PillowBackend
    if name == VIPSBackend.name:
        if not _HAS_VIPS:
            raise RuntimeError(
                f"PyVIPS is required but not available: {_vips_import_error}\n"
                "Install pyvips and libvips: pip install pyvips"
            )
        return VIPSBackend
    raise ValueError(f"Unknown codec backend: {name!r}")


def get_backend_name(name: str | None = None) -> str:
    """Get the display name of the selected backend.

    Returns:
        "Pillow" or "PyVIPS"
    """
    backend = get_backend(name)
    return "PyVIPS" if backend is VIPSBackend else "Pillow"
