"""Centralized configuration for tilemip.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    TILEMIP_CODEC_BACKEND: PNG pixel codec, "pillow" or "vips" (default: pillow)
    TILEMIP_PNG_COMPRESS_LEVEL: zlib level for written tiles, 0-9 (default: 6)
    TILEMIP_QUADRANT_WORKERS: Threads used for the four quadrant passes (default: 1)
    TILEMIP_PARALLEL_TILES: Worker processes for level builds (default: 4)
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Get a string from environment variable with fallback."""
    return os.environ.get(name, default)


# =============================================================================
# Codec Configuration
# =============================================================================

#: Backend used to decode/encode PNG pixel data
CODEC_BACKEND: str = _get_env_str("TILEMIP_CODEC_BACKEND", "pillow").strip().lower()

#: Known codec backend names
CODEC_BACKENDS: frozenset[str] = frozenset({"pillow", "vips"})

#: zlib compression level for written tiles (output is lossless at any level)
PNG_COMPRESS_LEVEL: int = _get_env_int("TILEMIP_PNG_COMPRESS_LEVEL", 6)


# =============================================================================
# Composition Configuration
# =============================================================================

#: Threads used to run the four quadrant downsample passes of one tile
QUADRANT_WORKERS: int = _get_env_int("TILEMIP_QUADRANT_WORKERS", 1)

#: Default tile edge length in pixels
DEFAULT_TILE_SIZE: int = 512


# =============================================================================
# Level Build Configuration
# =============================================================================

#: Default worker processes for building one pyramid level
DEFAULT_PARALLEL_TILES: int = _get_env_int("TILEMIP_PARALLEL_TILES", 4)

#: File suffix of tile images
TILE_SUFFIX: str = ".png"


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global CODEC_BACKEND, PNG_COMPRESS_LEVEL, QUADRANT_WORKERS, DEFAULT_PARALLEL_TILES

    if CODEC_BACKEND not in CODEC_BACKENDS:
        logger.warning(
            "Unknown CODEC_BACKEND=%r, falling back to 'pillow'", CODEC_BACKEND
        )
        CODEC_BACKEND = "pillow"

    if not 0 <= PNG_COMPRESS_LEVEL <= 9:
        clamped = min(max(PNG_COMPRESS_LEVEL, 0), 9)
        logger.warning(
            "PNG_COMPRESS_LEVEL=%d is out of range, clamping to %d",
            PNG_COMPRESS_LEVEL,
            clamped,
        )
        PNG_COMPRESS_LEVEL = clamped

    if QUADRANT_WORKERS < 1:
        logger.warning(
            "QUADRANT_WORKERS=%d is too low, clamping to 1", QUADRANT_WORKERS
        )
        QUADRANT_WORKERS = 1

    if DEFAULT_PARALLEL_TILES < 1:
        logger.warning(
            "DEFAULT_PARALLEL_TILES=%d is too low, clamping to 1",
            DEFAULT_PARALLEL_TILES,
        )
        DEFAULT_PARALLEL_TILES = 1


_validate_config()
