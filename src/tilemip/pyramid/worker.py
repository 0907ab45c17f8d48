"""Worker function for parallel level builds.

This module exists separately from level.py so the worker is importable by
spawn-based multiprocessing (Windows, macOS), which cannot pickle functions
defined in ``__main__``.
"""

from __future__ import annotations

import logging

from tilemip.core.types import Quadrant

from .compose import compose

logger = logging.getLogger(__name__)


def compose_parent(
    output_path: str,
    tile_size: int,
    colored: bool,
    children: dict[str, str],
    backend: str | None = None,
) -> tuple[str, str | None]:
    """Compose a single parent tile.

    Args:
        output_path: PNG file to write
        tile_size: Edge length of parent and child tiles
        colored: True for RGBA tiles, False for grayscale+alpha
        children: Quadrant name ("NW", "NE", "SW", "SE") to child tile path
        backend: Codec backend name

    Returns:
        Tuple of (output_path, error_message)
        - error_message: Error string if failed, None otherwise
    """
    kwargs = {Quadrant[name].name.lower(): path for name, path in children.items()}
    try:
        compose(output_path, tile_size, tile_size, colored, backend=backend, workers=1, **kwargs)
    except Exception as e:
        logger.error("Failed to compose %s: %s", output_path, e)
        return output_path, str(e)
    return output_path, None
