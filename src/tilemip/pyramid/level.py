"""Level-by-level mipmap generation over a directory of tiles.

Layout::

    <root>/0/r.<x>.<z>.png    finest level
    <root>/-1/r.<x>.<z>.png   2x coarser
    <root>/-2/...

Tile ``(x, z)`` of level ``L - 1`` is composed from tiles ``(2x, 2z)``,
``(2x+1, 2z)``, ``(2x, 2z+1)`` and ``(2x+1, 2z+1)`` of level ``L``, placed in
its NW, NE, SW and SE quadrants.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from tilemip.config import DEFAULT_PARALLEL_TILES, DEFAULT_TILE_SIZE, TILE_SUFFIX
from tilemip.core.types import Quadrant, TileCoord

from .worker import compose_parent

logger = logging.getLogger(__name__)

_TILE_NAME = re.compile(r"^r\.(-?\d+)\.(-?\d+)" + re.escape(TILE_SUFFIX) + "$")


def tile_name(coord: TileCoord) -> str:
    """File name of the tile at ``coord``."""
    return f"r.{coord.x}.{coord.z}{TILE_SUFFIX}"


def level_dir(root: Path, level: int) -> Path:
    return Path(root) / str(level)


def scan_level(directory: Path) -> dict[TileCoord, Path]:
    """Find all tiles in one level directory.

    Files that don't follow the ``r.<x>.<z>.png`` pattern are ignored.

    Args:
        directory: Level directory to scan

    Returns:
        Mapping of tile coordinate to file path
    """
    tiles: dict[TileCoord, Path] = {}
    for path in sorted(Path(directory).iterdir()):
        if not path.is_file():
            continue
        match = _TILE_NAME.match(path.name)
        if match is None:
            logger.debug("Ignoring non-tile file %s", path)
            continue
        tiles[TileCoord(int(match.group(1)), int(match.group(2)))] = path
    return tiles


@dataclass
class ParentTask:
    """One parent tile to compose.

    Attributes:
        coord: Coordinate of the parent in the coarser level
        output_path: Where the parent tile is written
        children: Present child tiles by quadrant
    """

    coord: TileCoord
    output_path: Path
    children: dict[Quadrant, Path]

    def is_up_to_date(self) -> bool:
        """True if the output exists and is newer than every child."""
        try:
            output_mtime = self.output_path.stat().st_mtime
        except FileNotFoundError:
            return False
        return all(p.stat().st_mtime <= output_mtime for p in self.children.values())


def plan_level(tiles: Mapping[TileCoord, Path], output_dir: Path) -> list[ParentTask]:
    """Group the tiles of one level by the parent tile they belong to.

    Args:
        tiles: Child tiles by coordinate
        output_dir: Directory of the coarser level

    Returns:
        ParentTasks sorted by (x, z)
    """
    groups: dict[TileCoord, dict[Quadrant, Path]] = {}
    for coord, path in tiles.items():
        groups.setdefault(coord.parent(), {})[Quadrant.for_child(coord.x, coord.z)] = path

    return [
        ParentTask(parent, Path(output_dir) / tile_name(parent), children)
        for parent, children in sorted(groups.items())
    ]


@dataclass
class LevelResult:
    """Outcome of building one level.

    Attributes:
        level: Level that was written
        written: Parent tiles composed
        skipped: Parent tiles already up to date
        errors: (output_path, error_message) for failed tiles
    """

    level: int
    written: int = 0
    skipped: int = 0
    errors: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.written + self.skipped + len(self.errors)


def build_level(
    root: Path,
    source_level: int,
    tile_size: int = DEFAULT_TILE_SIZE,
    colored: bool = True,
    parallel: int = DEFAULT_PARALLEL_TILES,
    force: bool = False,
    backend: str | None = None,
    progress_callback: Callable[[str, int, int], None] | None = None,
) -> LevelResult:
    """Build level ``source_level - 1`` from the tiles of ``source_level``.

    A failed parent tile is logged and recorded; it does not stop its
    siblings from being composed.

    Args:
        root: Pyramid root directory
        source_level: Level to read (0 = finest)
        tile_size: Edge length of every tile in pixels
        colored: True for RGBA tiles, False for grayscale+alpha
        parallel: Worker processes; 1 composes in this process
        force: Recompose tiles that are already up to date
        backend: Codec backend name
        progress_callback: Optional callback(stage, current, total)

    Returns:
        LevelResult for the written level

    Raises:
        RuntimeError: If the source level directory is missing
    """
    source_dir = level_dir(root, source_level)
    if not source_dir.is_dir():
        raise RuntimeError(f"Missing level directory: {source_dir}")

    target_level = source_level - 1
    target_dir = level_dir(root, target_level)
    target_dir.mkdir(parents=True, exist_ok=True)

    result = LevelResult(level=target_level)
    tasks = []
    for task in plan_level(scan_level(source_dir), target_dir):
        if not force and task.is_up_to_date():
            result.skipped += 1
        else:
            tasks.append(task)

    logger.info(
        "Level %d: %d tile(s) to compose, %d up to date",
        target_level, len(tasks), result.skipped,
    )

    total = len(tasks)
    if progress_callback:
        progress_callback("compose", 0, total)

    for done, (output_path, error) in enumerate(
        _run_tasks(tasks, tile_size, colored, parallel, backend), start=1
    ):
        if error:
            result.errors.append((Path(output_path), error))
        else:
            result.written += 1
        if progress_callback:
            progress_callback("compose", done, total)

    if result.errors:
        logger.warning("Level %d: %d tile(s) failed", target_level, len(result.errors))
    return result


def _run_tasks(
    tasks: list[ParentTask],
    tile_size: int,
    colored: bool,
    parallel: int,
    backend: str | None,
):
    """Yield (output_path, error_message) per task as tasks finish."""
    jobs = [
        (
            str(task.output_path),
            tile_size,
            colored,
            {q.name: str(p) for q, p in task.children.items()},
            backend,
        )
        for task in tasks
    ]

    if parallel <= 1 or len(jobs) <= 1:
        for job in jobs:
            yield compose_parent(*job)
        return

    with ProcessPoolExecutor(max_workers=parallel) as executor:
        futures = {executor.submit(compose_parent, *job): job[0] for job in jobs}
        for future in as_completed(futures):
            output_path = futures[future]
            try:
                yield future.result()
            except Exception as e:
                # Worker crashed (e.g. killed or out of memory)
                logger.error("Worker crashed composing %s: %s", output_path, e)
                yield output_path, str(e)


def build_pyramid(
    root: Path,
    levels: int,
    tile_size: int = DEFAULT_TILE_SIZE,
    colored: bool = True,
    parallel: int = DEFAULT_PARALLEL_TILES,
    force: bool = False,
    backend: str | None = None,
    progress_callback: Callable[[str, int, int], None] | None = None,
) -> list[LevelResult]:
    """Build ``levels`` successively coarser levels below level 0.

    Args:
        root: Pyramid root directory containing level ``0``
        levels: Number of coarser levels to build (-1 .. -levels)

    Returns:
        One LevelResult per built level, finest first
    """
    results = []
    for source_level in range(0, -levels, -1):
        results.append(
            build_level(
                root,
                source_level,
                tile_size=tile_size,
                colored=colored,
                parallel=parallel,
                force=force,
                backend=backend,
                progress_callback=progress_callback,
            )
        )
    return results
