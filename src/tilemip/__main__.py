"""CLI entry point for tilemip mipmap generation."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from tqdm import tqdm

from tilemip.codec.backends import get_backend_name
from tilemip.config import CODEC_BACKENDS, DEFAULT_PARALLEL_TILES, DEFAULT_TILE_SIZE
from tilemip.pyramid.level import LevelResult, build_level

logger = logging.getLogger(__name__)


def _print_header(
    root: Path, levels: int, tile_size: int, colored: bool, backend: str | None, force: bool
) -> None:
    """Print the CLI banner with processing parameters."""
    click.echo(click.style("tilemip", fg="cyan", bold=True))
    click.echo(click.style("=" * 40, fg="cyan"))
    click.echo(f"Pyramid root: {root}")
    layout = "RGBA" if colored else "grayscale+alpha"
    click.echo(
        f"Tile size: {tile_size}px | Layout: {layout} | Levels: {levels} "
        f"| Codec: {get_backend_name(backend)}"
    )
    if force:
        click.echo(click.style("Force mode: will recompose up-to-date tiles", fg="yellow"))
    click.echo()


def _print_summary(results: list[LevelResult], force: bool) -> None:
    """Print the colored summary and exit with error if any tile failed."""
    click.echo()
    click.echo(click.style("=" * 40, fg="cyan"))

    written = sum(r.written for r in results)
    skipped = sum(r.skipped for r in results)
    errors = [e for r in results for e in r.errors]

    parts = []
    if written > 0:
        parts.append(click.style(f"{written} composed", fg="green"))
    if skipped > 0:
        parts.append(click.style(f"{skipped} up to date", fg="cyan"))
    if errors:
        parts.append(click.style(f"{len(errors)} failed", fg="red"))

    summary = ", ".join(parts) if parts else "Nothing to compose"
    click.echo(click.style("Completed: ", bold=True) + summary)

    if skipped > 0 and not force:
        click.echo(click.style("  (use --force to recompose up-to-date tiles)", fg="cyan"))

    if errors:
        click.echo()
        click.echo(click.style("Failed tiles:", fg="red"))
        for path, error in errors:
            click.echo(f"  {path.name}: {error}")
        sys.exit(1)


@click.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--levels",
    "-l",
    type=click.IntRange(1, 32),
    default=1,
    help="Number of coarser levels to build below level 0 (default: 1)",
)
@click.option(
    "--tile-size",
    "-t",
    type=click.IntRange(2, 8192),
    default=DEFAULT_TILE_SIZE,
    help=f"Tile edge length in pixels, must be even (default: {DEFAULT_TILE_SIZE})",
)
@click.option(
    "--gray",
    is_flag=True,
    help="Tiles are grayscale+alpha instead of RGBA (e.g. light maps)",
)
@click.option(
    "--parallel",
    "-p",
    type=click.IntRange(1, 256),
    default=DEFAULT_PARALLEL_TILES,
    help=f"Worker processes per level (default: {DEFAULT_PARALLEL_TILES})",
)
@click.option(
    "--backend",
    type=click.Choice(sorted(CODEC_BACKENDS)),
    default=None,
    help="PNG codec backend (default: TILEMIP_CODEC_BACKEND or pillow)",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Recompose tiles even if they are newer than their children",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    root: str,
    levels: int,
    tile_size: int,
    gray: bool,
    parallel: int,
    backend: str | None,
    force: bool,
    verbose: bool,
) -> None:
    """Build mipmap levels for a directory of map tiles.

    ROOT must contain a level directory ``0`` with tiles named
    ``r.<x>.<z>.png``. Each run writes levels ``-1`` down to ``-LEVELS``,
    where every tile combines four tiles of the next finer level, each
    downsampled with a 2x2 box filter.

    Examples:

        # Build one coarser level of RGBA tiles
        python -m tilemip ./map

        # Build six levels of grayscale light-map tiles
        python -m tilemip ./light -l 6 --gray
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    root_dir = Path(root)
    colored = not gray

    if tile_size % 2:
        click.echo(f"Tile size must be even, got {tile_size}", err=True)
        sys.exit(1)
    if not (root_dir / "0").is_dir():
        click.echo(f"No level 0 directory found in {root_dir}", err=True)
        sys.exit(1)

    try:
        _print_header(root_dir, levels, tile_size, colored, backend, force)
    except RuntimeError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    results = []
    for source_level in range(0, -levels, -1):
        with tqdm(desc=f"Level {source_level - 1}", unit="tile") as pbar:

            def _on_progress(_stage: str, current: int, total: int) -> None:
                pbar.total = total
                pbar.n = current
                pbar.refresh()

            results.append(
                build_level(
                    root_dir,
                    source_level,
                    tile_size=tile_size,
                    colored=colored,
                    parallel=parallel,
                    force=force,
                    backend=backend,
                    progress_callback=_on_progress,
                )
            )

    _print_summary(results, force)


if __name__ == "__main__":
    main()
