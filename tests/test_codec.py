"""Tests for the PNG codec boundary."""

from __future__ import annotations

import errno
import os
import stat
import sys
from pathlib import Path

import numpy as np
import pytest

from conftest import make_png_bytes
from tilemip.codec import decode, encode, parse_header, read_header
from tilemip.codec.backends import PillowBackend
from tilemip.codec.png import HEADER_SIZE
from tilemip.core.errors import FormatError, TileError, TileIOError
from tilemip.core.raster import RasterBuffer
from tilemip.core.types import PixelFormat


class TestParseHeader:
    """Tests for signature and IHDR parsing."""

    def test_valid_header(self):
        header = parse_header(make_png_bytes(12, 6, 8, 4))
        assert (header.width, header.height) == (12, 6)
        assert header.bit_depth == 8
        assert header.color_type == 4
        assert header.interlace == 0

    def test_not_a_png(self):
        with pytest.raises(FormatError, match="not a PNG"):
            parse_header(b"GIF89a" + bytes(40))

    def test_empty(self):
        with pytest.raises(FormatError, match="not a PNG"):
            parse_header(b"")

    def test_truncated_header(self):
        data = make_png_bytes(4, 4)
        with pytest.raises(FormatError, match="truncated"):
            parse_header(data[: HEADER_SIZE - 1])

    def test_bad_ihdr_checksum(self):
        data = bytearray(make_png_bytes(4, 4))
        data[HEADER_SIZE - 1] ^= 0xFF
        with pytest.raises(FormatError, match="checksum"):
            parse_header(bytes(data))

    def test_missing_ihdr(self):
        data = bytearray(make_png_bytes(4, 4))
        data[12:16] = b"IDAT"
        with pytest.raises(FormatError, match="IHDR"):
            parse_header(bytes(data))


class TestDecode:
    """Tests for decode(): I/O errors, validation and pixel contents."""

    def test_decodes_handmade_png(self, temp_dir: Path):
        """A PNG written without Pillow decodes to its raw rows."""
        pixels = bytes(range(4 * 2 * 4))
        path = temp_dir / "hand.png"
        path.write_bytes(make_png_bytes(4, 2, 8, 6, pixels))

        buf = decode(path, 4, 2, PixelFormat.RGB_ALPHA)
        assert buf.tobytes() == pixels

    def test_decodes_gray_alpha(self, write_png, sample_la_array: np.ndarray):
        path = write_png("la.png", sample_la_array)
        buf = decode(path, 8, 8, PixelFormat.GRAY_ALPHA)
        assert buf.format is PixelFormat.GRAY_ALPHA
        np.testing.assert_array_equal(buf.pixels, sample_la_array)

    def test_missing_file_is_io_error(self, temp_dir: Path):
        path = temp_dir / "missing.png"
        with pytest.raises(TileIOError) as excinfo:
            decode(path, 4, 4, PixelFormat.RGB_ALPHA)
        assert isinstance(excinfo.value, OSError)
        assert isinstance(excinfo.value, TileError)
        assert excinfo.value.errno == errno.ENOENT
        assert excinfo.value.filename == str(path)
        assert "open" in str(excinfo.value)

    def test_directory_is_io_error(self, temp_dir: Path):
        with pytest.raises(TileIOError):
            decode(temp_dir, 4, 4, PixelFormat.RGB_ALPHA)

    def test_garbage_is_format_error(self, temp_dir: Path):
        path = temp_dir / "garbage.png"
        path.write_bytes(b"this is not an image")
        with pytest.raises(FormatError):
            decode(path, 4, 4, PixelFormat.RGB_ALPHA)

    def test_truncated_pixel_data_is_format_error(self, temp_dir: Path):
        data = make_png_bytes(16, 16, 8, 6, bytes(range(256)) * 4)
        path = temp_dir / "truncated.png"
        path.write_bytes(data[: HEADER_SIZE + 8 + 20])
        with pytest.raises(FormatError):
            decode(path, 16, 16, PixelFormat.RGB_ALPHA)

    @pytest.mark.parametrize(
        "width, height, bit_depth, color_type, match",
        [
            (8, 4, 8, 6, "expected 4x4"),
            (4, 8, 8, 6, "expected 4x4"),
            (4, 4, 16, 6, "8-bit"),
            (4, 4, 8, 4, "truecolor\\+alpha"),
            (4, 4, 8, 2, "truecolor\\+alpha"),
            (4, 4, 8, 3, "truecolor\\+alpha"),
        ],
        ids=["wider", "taller", "16-bit", "gray-alpha", "rgb", "palette"],
    )
    def test_rgba_validation_rejects(
        self,
        temp_dir: Path,
        width: int,
        height: int,
        bit_depth: int,
        color_type: int,
        match: str,
    ):
        path = temp_dir / "mismatch.png"
        path.write_bytes(make_png_bytes(width, height, bit_depth, color_type))
        with pytest.raises(FormatError, match=match):
            decode(path, 4, 4, PixelFormat.RGB_ALPHA)

    @pytest.mark.parametrize(
        "bit_depth, color_type",
        [(8, 6), (16, 4), (8, 0)],
        ids=["rgba", "16-bit", "gray"],
    )
    def test_gray_alpha_validation_rejects(self, temp_dir: Path, bit_depth: int, color_type: int):
        path = temp_dir / "mismatch.png"
        path.write_bytes(make_png_bytes(4, 4, bit_depth, color_type))
        with pytest.raises(FormatError, match="validate failed"):
            decode(path, 4, 4, PixelFormat.GRAY_ALPHA)

    def test_read_header(self, write_png, sample_rgba_array: np.ndarray):
        path = write_png("rgba.png", sample_rgba_array)
        header = read_header(path)
        assert (header.width, header.height, header.bit_depth, header.color_type) == (8, 8, 8, 6)


class TestEncode:
    """Tests for encode(): output format, round trip and atomicity."""

    @pytest.mark.parametrize("fmt", list(PixelFormat), ids=lambda f: f.value)
    def test_round_trip_is_byte_identical(
        self,
        temp_dir: Path,
        fmt: PixelFormat,
        sample_rgba_array: np.ndarray,
        sample_la_array: np.ndarray,
    ):
        pixels = sample_rgba_array if fmt is PixelFormat.RGB_ALPHA else sample_la_array
        original = RasterBuffer(8, 8, fmt, pixels.copy())
        path = temp_dir / "tile.png"

        encode(path, original)
        decoded = decode(path, 8, 8, fmt)

        assert decoded.tobytes() == original.tobytes()

    @pytest.mark.parametrize("fmt", list(PixelFormat), ids=lambda f: f.value)
    def test_header_describes_buffer(self, temp_dir: Path, fmt: PixelFormat):
        path = temp_dir / "tile.png"
        encode(path, RasterBuffer.zeros(10, 6, fmt))
        header = read_header(path)
        assert (header.width, header.height) == (10, 6)
        assert header.bit_depth == 8
        assert header.color_type == fmt.png_color_type
        assert header.interlace == 0

    def test_deterministic(self, temp_dir: Path, sample_rgba_array: np.ndarray):
        buf = RasterBuffer(8, 8, PixelFormat.RGB_ALPHA, sample_rgba_array)
        encode(temp_dir / "a.png", buf)
        encode(temp_dir / "b.png", buf)
        assert (temp_dir / "a.png").read_bytes() == (temp_dir / "b.png").read_bytes()

    def test_readable_by_pillow(self, temp_dir: Path, read_png, sample_la_array: np.ndarray):
        path = temp_dir / "la.png"
        encode(path, RasterBuffer(8, 8, PixelFormat.GRAY_ALPHA, sample_la_array))
        np.testing.assert_array_equal(read_png(path), sample_la_array)

    def test_overwrites_existing(self, temp_dir: Path):
        path = temp_dir / "tile.png"
        path.write_bytes(b"old contents")
        encode(path, RasterBuffer.zeros(4, 4, PixelFormat.RGB_ALPHA))
        assert read_header(path).width == 4

    def test_missing_directory_is_io_error(self, temp_dir: Path):
        path = temp_dir / "no_such_dir" / "tile.png"
        with pytest.raises(TileIOError) as excinfo:
            encode(path, RasterBuffer.zeros(4, 4, PixelFormat.RGB_ALPHA))
        assert excinfo.value.errno == errno.ENOENT
        assert not path.exists()

    def test_failed_encode_leaves_no_files(self, temp_dir: Path, monkeypatch):
        """A failure while writing removes the temp file and keeps the old tile."""
        path = temp_dir / "tile.png"
        path.write_bytes(b"previous tile")

        def _fail(*_args, **_kwargs):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr("tilemip.core.paths.os.replace", _fail)
        with pytest.raises(TileIOError, match="write"):
            encode(path, RasterBuffer.zeros(4, 4, PixelFormat.RGB_ALPHA))

        assert path.read_bytes() == b"previous tile"
        assert sorted(p.name for p in temp_dir.iterdir()) == ["tile.png"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX file modes")
    def test_new_tile_follows_umask(self, temp_dir: Path):
        path = temp_dir / "tile.png"
        old_mask = os.umask(0o022)
        try:
            encode(path, RasterBuffer.zeros(4, 4, PixelFormat.RGB_ALPHA))
        finally:
            os.umask(old_mask)
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX file modes")
    def test_replaced_tile_keeps_mode(self, temp_dir: Path):
        path = temp_dir / "tile.png"
        path.write_bytes(b"old tile")
        path.chmod(0o640)
        encode(path, RasterBuffer.zeros(4, 4, PixelFormat.RGB_ALPHA))
        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_malformed_encoder_output(self, temp_dir: Path, monkeypatch):
        """Bad encoder output is reported as an encode failure, nothing is written."""
        monkeypatch.setattr(
            PillowBackend, "encode_png", staticmethod(lambda buffer, level=None: b"junk")
        )
        path = temp_dir / "tile.png"
        with pytest.raises(FormatError, match="^encode failed"):
            encode(path, RasterBuffer.zeros(4, 4, PixelFormat.RGB_ALPHA), backend="pillow")
        assert not path.exists()
