"""PNG tile codec: strict header validation, decode and atomic encode.

Every tile at every pyramid level is an 8-bit PNG in one of two layouts,
grayscale+alpha or RGBA (see :class:`~tilemip.core.types.PixelFormat`).
Decoding validates the IHDR chunk against the caller's expected width,
height and layout before any pixel data is touched; nothing is coerced or
rescaled. Encoding is all-or-nothing: the target path is only replaced once
a complete PNG has been written.
"""

from __future__ import annotations

import logging
import os
import struct
import zlib
from pathlib import Path
from typing import NamedTuple

from tilemip.core.errors import FormatError, TileIOError
from tilemip.core.paths import atomic_write
from tilemip.core.raster import RasterBuffer
from tilemip.core.types import PixelFormat

from .backends import get_backend

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_CHUNK_HEADER = struct.Struct(">I4s")
_IHDR = struct.Struct(">IIBBBBB")
_CRC = struct.Struct(">I")

#: Signature + IHDR chunk (length, type, 13 data bytes, CRC)
HEADER_SIZE = len(PNG_SIGNATURE) + _CHUNK_HEADER.size + _IHDR.size + _CRC.size

#: Bit depth of every tile channel
BIT_DEPTH = 8

_COLOR_TYPE_NAMES = {
    0: "grayscale",
    2: "truecolor",
    3: "indexed",
    4: "grayscale+alpha",
    6: "truecolor+alpha",
}


class PngHeader(NamedTuple):
    """Fields of a PNG IHDR chunk.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        bit_depth: Bits per sample
        color_type: PNG color type (4 = grayscale+alpha, 6 = RGBA)
        interlace: 0 = none, 1 = Adam7
    """

    width: int
    height: int
    bit_depth: int
    color_type: int
    interlace: int

    @property
    def color_type_name(self) -> str:
        return _COLOR_TYPE_NAMES.get(self.color_type, f"unknown ({self.color_type})")


def parse_header(data: bytes, path: object = None) -> PngHeader:
    """Parse and structurally check the signature and IHDR chunk.

    Args:
        data: At least the first HEADER_SIZE bytes of a file
        path: Source path, used in error messages only

    Returns:
        PngHeader of the image

    Raises:
        FormatError: If the data does not start with a well-formed PNG header
    """
    if len(data) < len(PNG_SIGNATURE) or data[: len(PNG_SIGNATURE)] != PNG_SIGNATURE:
        raise FormatError("decode failed: not a PNG file", path)
    if len(data) < HEADER_SIZE:
        raise FormatError("decode failed: truncated PNG header", path)

    length, chunk_type = _CHUNK_HEADER.unpack_from(data, len(PNG_SIGNATURE))
    if chunk_type != b"IHDR" or length != _IHDR.size:
        raise FormatError("decode failed: PNG does not start with an IHDR chunk", path)

    ihdr_start = len(PNG_SIGNATURE) + _CHUNK_HEADER.size
    (crc,) = _CRC.unpack_from(data, ihdr_start + _IHDR.size)
    if zlib.crc32(data[ihdr_start - 4 : ihdr_start + _IHDR.size]) != crc:
        raise FormatError("decode failed: IHDR checksum mismatch", path)

    width, height, bit_depth, color_type, compression, filter_method, interlace = (
        _IHDR.unpack_from(data, ihdr_start)
    )
    if width == 0 or height == 0:
        raise FormatError("decode failed: PNG has zero width or height", path)
    if compression != 0 or filter_method != 0 or interlace not in (0, 1):
        raise FormatError("decode failed: invalid IHDR method fields", path)

    return PngHeader(width, height, bit_depth, color_type, interlace)


def validate_header(
    header: PngHeader, width: int, height: int, fmt: PixelFormat, path: object = None
) -> None:
    """Check a parsed header against the expected tile geometry and layout.

    Raises:
        FormatError: On any width, height, bit depth or color type mismatch
    """
    if header.width != width or header.height != height:
        raise FormatError(
            f"validate failed: expected {width}x{height} tile, "
            f"found {header.width}x{header.height}",
            path,
        )
    if header.bit_depth != BIT_DEPTH:
        raise FormatError(
            f"validate failed: expected {BIT_DEPTH}-bit channels, "
            f"found {header.bit_depth}-bit",
            path,
        )
    if header.color_type != fmt.png_color_type:
        expected = _COLOR_TYPE_NAMES[fmt.png_color_type]
        raise FormatError(
            f"validate failed: expected {expected} tile, found {header.color_type_name}",
            path,
        )


def _read_file(path: Path, size: int = -1) -> bytes:
    try:
        f = open(path, "rb")
    except OSError as e:
        raise TileIOError.from_os_error(e, "open", path) from e
    with f:
        try:
            return f.read(size)
        except OSError as e:
            raise TileIOError.from_os_error(e, "read", path) from e


def read_header(path: str | os.PathLike[str]) -> PngHeader:
    """Read the header of a PNG tile without decoding its pixels.

    Raises:
        TileIOError: If the file cannot be opened or read
        FormatError: If the file does not start with a valid PNG header
    """
    path = Path(path)
    return parse_header(_read_file(path, HEADER_SIZE), path)


def decode(
    path: str | os.PathLike[str],
    width: int,
    height: int,
    fmt: PixelFormat,
    backend: str | None = None,
) -> RasterBuffer:
    """Decode a PNG tile into a new raster buffer.

    Args:
        path: PNG file to read
        width: Required image width
        height: Required image height
        fmt: Required channel layout
        backend: Codec backend name (default: config.CODEC_BACKEND)

    Returns:
        RasterBuffer with the decoded pixels

    Raises:
        TileIOError: If the file cannot be opened or read
        FormatError: If the file is not a valid PNG or does not match
            ``width``, ``height``, 8-bit depth and ``fmt`` exactly
    """
    path = Path(path)
    data = _read_file(path)

    header = parse_header(data, path)
    validate_header(header, width, height, fmt, path)

    pixels = get_backend(backend).decode_png(data, path)
    expected = (height, width, fmt.channels)
    if pixels.shape != expected:
        raise FormatError(
            f"decode failed: pixel data shaped {pixels.shape}, expected {expected}",
            path,
        )

    logger.debug("Decoded %s (%dx%d %s)", path.name, width, height, fmt.value)
    return RasterBuffer(width, height, fmt, pixels)


def encode(
    path: str | os.PathLike[str],
    buffer: RasterBuffer,
    backend: str | None = None,
    compress_level: int | None = None,
) -> None:
    """Encode a raster buffer to a PNG tile.

    The PNG is written to a temporary file next to ``path`` and renamed over
    it only once complete, so a failed call never leaves a partial tile at
    ``path``.

    Args:
        path: Destination PNG file
        buffer: Pixels to write, rows top to bottom
        backend: Codec backend name (default: config.CODEC_BACKEND)
        compress_level: zlib level 0-9 (default: config.PNG_COMPRESS_LEVEL)

    Raises:
        TileIOError: If the file cannot be created, written or renamed
        FormatError: If the encoder fails to produce a well-formed PNG
    """
    path = Path(path)
    data = get_backend(backend).encode_png(buffer, compress_level)

    try:
        header = parse_header(data, path)
    except FormatError as e:
        raise FormatError(f"encode failed: {e}") from e
    if header.interlace != 0:
        raise FormatError("encode failed: encoder produced an interlaced PNG", path)
    try:
        validate_header(header, buffer.width, buffer.height, buffer.format, path)
    except FormatError as e:
        raise FormatError(f"encode failed: {e}") from e

    try:
        atomic_write(path, lambda f: f.write(data))
    except OSError as e:
        raise TileIOError.from_os_error(e, "write", path) from e

    logger.debug("Encoded %s (%d bytes)", path.name, len(data))
