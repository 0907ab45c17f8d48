"""Pyramid composition: quadrant downsampling, tile composition, level builds."""

from .compose import ComposeState, TileComposer, check_dimensions, compose, compose_buffer
from .downsample import box_filter, downsample_into
from .level import (
    LevelResult,
    ParentTask,
    build_level,
    build_pyramid,
    plan_level,
    scan_level,
    tile_name,
)

__all__ = [
    "ComposeState",
    "TileComposer",
    "check_dimensions",
    "compose",
    "compose_buffer",
    "box_filter",
    "downsample_into",
    "LevelResult",
    "ParentTask",
    "build_level",
    "build_pyramid",
    "plan_level",
    "scan_level",
    "tile_name",
]
