"""Shared type definitions for tilemip core module."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class PixelFormat(Enum):
    """Channel layout of a tile, fixed at 8 bits per channel.

    Attributes:
        GRAY_ALPHA: 2 bytes per pixel (luminance, alpha)
        RGB_ALPHA: 4 bytes per pixel (red, green, blue, alpha)
    """

    GRAY_ALPHA = "gray_alpha"
    RGB_ALPHA = "rgb_alpha"

    @classmethod
    def from_colored(cls, colored: bool) -> PixelFormat:
        return cls.RGB_ALPHA if colored else cls.GRAY_ALPHA

    @property
    def bytes_per_pixel(self) -> int:
        return 4 if self is PixelFormat.RGB_ALPHA else 2

    @property
    def channels(self) -> int:
        # One byte per channel
        return self.bytes_per_pixel

    @property
    def png_color_type(self) -> int:
        """PNG IHDR color type (6 = truecolor+alpha, 4 = grayscale+alpha)."""
        return 6 if self is PixelFormat.RGB_ALPHA else 4

    @property
    def pil_mode(self) -> str:
        return "RGBA" if self is PixelFormat.RGB_ALPHA else "LA"


class Quadrant(Enum):
    """One quarter of a parent tile, valued by its (column, row) half index."""

    NW = (0, 0)
    NE = (1, 0)
    SW = (0, 1)
    SE = (1, 1)

    @classmethod
    def for_child(cls, x: int, z: int) -> Quadrant:
        """Quadrant of the parent tile that child tile ``(x, z)`` fills."""
        return cls((x % 2, z % 2))

    def offset(self, width: int, height: int) -> tuple[int, int]:
        """Pixel offset ``(x, y)`` of this quadrant in a ``width`` x ``height`` parent."""
        col, row = self.value
        return col * (width // 2), row * (height // 2)


class TileCoord(NamedTuple):
    """Coordinate of a tile within one pyramid level.

    Attributes:
        x: Column index, may be negative
        z: Row index, may be negative
    """

    x: int
    z: int

    def parent(self) -> TileCoord:
        return TileCoord(self.x // 2, self.z // 2)
