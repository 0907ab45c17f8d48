"""Core types for tilemip."""

from .errors import FormatError, TileError, TileIOError
from .raster import RasterBuffer
from .types import PixelFormat, Quadrant, TileCoord

__all__ = [
    "FormatError",
    "TileError",
    "TileIOError",
    "RasterBuffer",
    "PixelFormat",
    "Quadrant",
    "TileCoord",
]
