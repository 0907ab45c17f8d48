"""In-memory pixel buffer shared by the codec and the pyramid composer."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .types import PixelFormat


@dataclass
class RasterBuffer:
    """A row-major, unpadded grid of 8-bit pixel records.

    The pixel data lives in a contiguous ``uint8`` array shaped
    ``(height, width, channels)``, so its byte image is exactly
    ``bytes_per_pixel * width * height`` bytes.

    Attributes:
        width: Width in pixels
        height: Height in pixels
        format: Channel layout of every pixel
        pixels: Backing array, shape (height, width, format.channels)
    """

    width: int
    height: int
    format: PixelFormat
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Raster dimensions must be positive, got {self.width}x{self.height}"
            )
        expected = (self.height, self.width, self.format.channels)
        if self.pixels.shape != expected:
            raise ValueError(
                f"Pixel array shape {self.pixels.shape} does not match {expected}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Pixel array must be uint8, got {self.pixels.dtype}")
        if not self.pixels.flags.c_contiguous:
            self.pixels = np.ascontiguousarray(self.pixels)

    @classmethod
    def zeros(cls, width: int, height: int, fmt: PixelFormat) -> RasterBuffer:
        """Allocate a fully transparent (all channels zero) buffer."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        pixels = np.zeros((height, width, fmt.channels), dtype=np.uint8)
        return cls(width, height, fmt, pixels)

    @classmethod
    def from_bytes(
        cls, data: bytes, width: int, height: int, fmt: PixelFormat
    ) -> RasterBuffer:
        """Copy a packed row-major byte string into a new buffer."""
        expected = fmt.bytes_per_pixel * width * height
        if len(data) != expected:
            raise ValueError(
                f"Expected {expected} bytes for {width}x{height} {fmt.value}, got {len(data)}"
            )
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, fmt.channels)
        return cls(width, height, fmt, pixels.copy())

    @property
    def bytes_per_pixel(self) -> int:
        return self.format.bytes_per_pixel

    @property
    def nbytes(self) -> int:
        return self.pixels.nbytes

    def get(self, row: int, col: int, channel: int) -> int:
        self._check_index(row, col, channel)
        return int(self.pixels[row, col, channel])

    def set(self, row: int, col: int, channel: int, value: int) -> None:
        if not 0 <= value <= 255:
            raise ValueError(f"Channel value out of range: {value}")
        self._check_index(row, col, channel)
        self.pixels[row, col, channel] = value

    def _check_index(self, row: int, col: int, channel: int) -> None:
        if not (
            0 <= row < self.height
            and 0 <= col < self.width
            and 0 <= channel < self.format.channels
        ):
            raise IndexError(
                f"Pixel index ({row}, {col}, {channel}) outside "
                f"{self.width}x{self.height} {self.format.value} buffer"
            )

    def row(self, index: int) -> bytes:
        """Packed bytes of one row, ``bytes_per_pixel * width`` long."""
        return self.pixels[index].tobytes()

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def is_empty(self) -> bool:
        """True when every channel of every pixel is zero."""
        return not self.pixels.any()
