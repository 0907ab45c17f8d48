"""Compose a parent tile from up to four child tiles."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Mapping

from tilemip import config
from tilemip.codec import encode
from tilemip.core.errors import TileError
from tilemip.core.raster import RasterBuffer
from tilemip.core.types import PixelFormat, Quadrant

from .downsample import downsample_into

logger = logging.getLogger(__name__)


class ComposeState(Enum):
    """Lifecycle of a TileComposer."""

    ALLOCATED = "allocated"  # Zeroed buffer, no quadrant filled yet
    POPULATING = "populating"  # At least one quadrant pass started
    ENCODED = "encoded"  # Written to disk, buffer consumed
    FAILED = "failed"  # A pass or the encode raised


def check_dimensions(width: int, height: int) -> None:
    """Reject tile sizes that cannot be split into four equal quadrants.

    Raises:
        ValueError: If width or height is not a positive even number
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Tile dimensions must be positive, got {width}x{height}")
    if width % 2 or height % 2:
        raise ValueError(f"Tile dimensions must be even, got {width}x{height}")


class TileComposer:
    """Builds one parent tile by box-filtering child tiles into its quadrants.

    The parent buffer is allocated zero-filled, so quadrants without a child
    stay fully transparent. Quadrant passes touch disjoint regions and can
    run on worker threads; all of them finish before the tile is encoded.

    Args:
        width: Tile width (even), shared by parent and children
        height: Tile height (even), shared by parent and children
        fmt: Channel layout, shared by parent and children
        backend: Codec backend name (default: config.CODEC_BACKEND)
        workers: Threads for quadrant passes (default: config.QUADRANT_WORKERS)
    """

    def __init__(
        self,
        width: int,
        height: int,
        fmt: PixelFormat,
        backend: str | None = None,
        workers: int | None = None,
    ) -> None:
        check_dimensions(width, height)
        self.width = width
        self.height = height
        self.format = fmt
        self.backend = backend
        self.workers = workers if workers is not None else config.QUADRANT_WORKERS
        self.buffer = RasterBuffer.zeros(width, height, fmt)
        self.state = ComposeState.ALLOCATED
        self._filled: set[Quadrant] = set()

    @property
    def filled(self) -> frozenset[Quadrant]:
        """Quadrants that have received a child tile."""
        return frozenset(self._filled)

    def add(self, quadrant: Quadrant, child_path: str | os.PathLike[str] | None) -> None:
        """Downsample one child tile into ``quadrant``; None is a no-op."""
        if child_path is None:
            return
        self._begin(quadrant)
        self._run(quadrant, child_path)

    def add_all(self, children: Mapping[Quadrant, str | os.PathLike[str] | None]) -> None:
        """Downsample every present child, concurrently if workers > 1."""
        pending = [(q, children[q]) for q in Quadrant if children.get(q) is not None]
        for quadrant, _ in pending:
            self._begin(quadrant)

        if self.workers <= 1 or len(pending) <= 1:
            for quadrant, child_path in pending:
                self._run(quadrant, child_path)
            return

        with ThreadPoolExecutor(max_workers=min(self.workers, len(pending))) as executor:
            futures = [
                executor.submit(self._run, quadrant, child_path)
                for quadrant, child_path in pending
            ]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

    def encode(self, output_path: str | os.PathLike[str]) -> None:
        """Write the composed tile. The composer cannot be used afterwards."""
        self._check_usable()
        try:
            encode(output_path, self.buffer, backend=self.backend)
        except TileError as e:
            self.state = ComposeState.FAILED
            logger.error("Failed to encode composed tile %s: %s", output_path, e)
            raise
        except BaseException:
            self.state = ComposeState.FAILED
            raise
        self.state = ComposeState.ENCODED
        logger.debug(
            "Composed %s from %d quadrant(s)", output_path, len(self._filled)
        )

    def _check_usable(self) -> None:
        if self.state in (ComposeState.ENCODED, ComposeState.FAILED):
            raise RuntimeError(f"TileComposer is {self.state.value}")

    def _begin(self, quadrant: Quadrant) -> None:
        self._check_usable()
        if quadrant in self._filled:
            raise ValueError(f"Quadrant {quadrant.name} already filled")
        self._filled.add(quadrant)
        self.state = ComposeState.POPULATING

    def _run(self, quadrant: Quadrant, child_path: str | os.PathLike[str]) -> None:
        try:
            downsample_into(
                self.buffer,
                quadrant,
                child_path,
                self.width,
                self.height,
                self.format,
                backend=self.backend,
            )
        except TileError as e:
            self.state = ComposeState.FAILED
            logger.error("Failed to fill %s quadrant: %s", quadrant.name, e)
            raise
        except BaseException:
            self.state = ComposeState.FAILED
            raise


def compose_buffer(
    width: int,
    height: int,
    fmt: PixelFormat,
    children: Mapping[Quadrant, str | os.PathLike[str] | None],
    backend: str | None = None,
    workers: int | None = None,
) -> RasterBuffer:
    """Compose a parent tile in memory without encoding it.

    Returns:
        The populated parent RasterBuffer
    """
    composer = TileComposer(width, height, fmt, backend=backend, workers=workers)
    composer.add_all(children)
    return composer.buffer


def compose(
    output_path: str | os.PathLike[str],
    width: int,
    height: int,
    colored: bool,
    nw: str | os.PathLike[str] | None = None,
    ne: str | os.PathLike[str] | None = None,
    sw: str | os.PathLike[str] | None = None,
    se: str | os.PathLike[str] | None = None,
    backend: str | None = None,
    workers: int | None = None,
) -> None:
    """Compose one coarser tile from up to four sibling tiles and write it.

    Each present child is decoded at ``width`` x ``height``, halved with a
    2x2 floor-averaging box filter and placed into its quadrant; absent
    children leave their quadrant fully transparent. With no children at all
    a fully transparent tile is still written.

    Args:
        output_path: PNG file to write
        width: Tile width, even
        height: Tile height, even
        colored: True for RGBA tiles, False for grayscale+alpha
        nw: North-west (top-left) child tile
        ne: North-east (top-right) child tile
        sw: South-west (bottom-left) child tile
        se: South-east (bottom-right) child tile
        backend: Codec backend name (default: config.CODEC_BACKEND)
        workers: Threads for quadrant passes (default: config.QUADRANT_WORKERS)

    Raises:
        ValueError: If width or height is odd or not positive
        TileIOError: If a child cannot be read or the output cannot be written
        FormatError: If a child is not a matching PNG tile, or encoding fails
    """
    composer = TileComposer(
        width, height, PixelFormat.from_colored(colored), backend=backend, workers=workers
    )
    composer.add_all({Quadrant.NW: nw, Quadrant.NE: ne, Quadrant.SW: sw, Quadrant.SE: se})
    composer.encode(output_path)
