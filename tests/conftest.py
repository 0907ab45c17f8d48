"""Test fixtures for tilemip tests."""

from __future__ import annotations

import struct
import tempfile
import zlib
from pathlib import Path
from typing import Callable, Generator

import numpy as np
import pytest
from PIL import Image

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _chunk(kind: bytes, data: bytes) -> bytes:
    return (
        struct.pack(">I", len(data))
        + kind
        + data
        + struct.pack(">I", zlib.crc32(kind + data))
    )


def make_png_bytes(
    width: int,
    height: int,
    bit_depth: int = 8,
    color_type: int = 6,
    pixels: bytes | None = None,
) -> bytes:
    """Build a non-interlaced PNG by hand (filter type 0 on every row)."""
    channels = {0: 1, 2: 3, 3: 1, 4: 2, 6: 4}[color_type]
    row_size = (width * channels * bit_depth + 7) // 8
    if pixels is None:
        pixels = bytes(row_size * height)
    raw = b"".join(
        b"\x00" + pixels[row * row_size : (row + 1) * row_size] for row in range(height)
    )
    ihdr = struct.pack(">IIBBBBB", width, height, bit_depth, color_type, 0, 0, 0)
    chunks = _chunk(b"IHDR", ihdr)
    if color_type == 3:
        chunks += _chunk(b"PLTE", bytes(3 * 256))
    return PNG_SIGNATURE + chunks + _chunk(b"IDAT", zlib.compress(raw)) + _chunk(b"IEND", b"")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_rgba_array() -> np.ndarray:
    """8x8 RGBA image with a distinct value in every channel of every pixel."""
    values = np.arange(8 * 8 * 4, dtype=np.uint16) % 251
    return values.astype(np.uint8).reshape(8, 8, 4)


@pytest.fixture
def sample_la_array() -> np.ndarray:
    """8x8 grayscale+alpha image with a distinct value per sample."""
    values = (np.arange(8 * 8 * 2, dtype=np.uint16) * 7) % 256
    return values.astype(np.uint8).reshape(8, 8, 2)


@pytest.fixture
def write_png(temp_dir: Path) -> Callable[[str, np.ndarray], Path]:
    """Write a (H, W, 2|4) uint8 array as PNG with Pillow, independent of tilemip."""

    def _write(name: str, pixels: np.ndarray) -> Path:
        height, width, channels = pixels.shape
        mode = {2: "LA", 4: "RGBA"}[channels]
        path = temp_dir / name
        Image.frombytes(mode, (width, height), np.ascontiguousarray(pixels).tobytes()).save(
            path, format="PNG"
        )
        return path

    return _write


@pytest.fixture
def read_png() -> Callable[[Path], np.ndarray]:
    """Read a PNG with Pillow into a (H, W, bands) uint8 array."""

    def _read(path: Path) -> np.ndarray:
        with Image.open(path) as img:
            return np.array(img, dtype=np.uint8)

    return _read
