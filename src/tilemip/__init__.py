"""tilemip - mipmap pyramid composition for tiled map renderers."""

__version__ = "0.1.0"

from tilemip.core.errors import FormatError, TileError, TileIOError
from tilemip.core.raster import RasterBuffer
from tilemip.core.types import PixelFormat, Quadrant
from tilemip.nbt import ByteCursor, ScalarTag, TagType, read_scalar
from tilemip.pyramid.compose import compose

__all__ = [
    "FormatError",
    "TileError",
    "TileIOError",
    "RasterBuffer",
    "PixelFormat",
    "Quadrant",
    "ByteCursor",
    "ScalarTag",
    "TagType",
    "read_scalar",
    "compose",
]
