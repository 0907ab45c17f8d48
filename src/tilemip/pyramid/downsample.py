"""2x2 box-filter downsampling of a child tile into one parent quadrant."""

from __future__ import annotations

import logging
import os

import numpy as np

from tilemip.codec import decode
from tilemip.core.raster import RasterBuffer
from tilemip.core.types import PixelFormat, Quadrant

logger = logging.getLogger(__name__)


def box_filter(pixels: np.ndarray) -> np.ndarray:
    """Halve an image by averaging every 2x2 block, per channel.

    The average is floor division of the four-sample sum by 4. Alpha is
    filtered exactly like the color channels (no premultiplication). With
    truncation, coarser levels come out slightly darker and more transparent.

    Args:
        pixels: uint8 array shaped (H, W, C) with even H and W

    Returns:
        uint8 array shaped (H // 2, W // 2, C)

    Raises:
        ValueError: If H or W is odd
    """
    height, width = pixels.shape[:2]
    if height % 2 or width % 2:
        raise ValueError(f"Cannot box-filter odd dimensions {width}x{height}")

    # Four uint8 samples sum to at most 1020
    src = pixels.astype(np.uint16)
    total = src[0::2, 0::2] + src[0::2, 1::2] + src[1::2, 0::2] + src[1::2, 1::2]
    return (total // 4).astype(np.uint8)


def downsample_into(
    parent: RasterBuffer,
    quadrant: Quadrant,
    child_path: str | os.PathLike[str] | None,
    child_width: int,
    child_height: int,
    fmt: PixelFormat,
    backend: str | None = None,
) -> None:
    """Decode a child tile and write its half-resolution image into a quadrant.

    A missing child (``child_path is None``) leaves the quadrant untouched.
    Decode errors propagate unchanged.

    Args:
        parent: Buffer being composed, modified in place
        quadrant: Region of ``parent`` to fill
        child_path: Encoded child tile, or None
        child_width: Width of the child tile, must equal ``parent.width``
        child_height: Height of the child tile, must equal ``parent.height``
        fmt: Layout of the child tile, must equal ``parent.format``
        backend: Codec backend name (default: config.CODEC_BACKEND)

    Raises:
        ValueError: If the child geometry differs from the parent's
        TileIOError: If the child cannot be read
        FormatError: If the child is not a matching PNG tile
    """
    if child_path is None:
        return

    if (child_width, child_height, fmt) != (parent.width, parent.height, parent.format):
        raise ValueError(
            f"Child tile {child_width}x{child_height} {fmt.value} does not match "
            f"parent {parent.width}x{parent.height} {parent.format.value}"
        )

    child = decode(child_path, child_width, child_height, fmt, backend=backend)
    half = box_filter(child.pixels)
    del child

    x, y = quadrant.offset(parent.width, parent.height)
    rows, cols = half.shape[:2]
    parent.pixels[y : y + rows, x : x + cols] = half
    logger.debug("Filled %s quadrant from %s", quadrant.name, child_path)
