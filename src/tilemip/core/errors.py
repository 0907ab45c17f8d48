"""Error taxonomy for tile decode, encode and composition."""

from __future__ import annotations


class TileError(Exception):
    """Base class for raster tile errors."""


class TileIOError(TileError, OSError):
    """A tile file could not be opened, read, written or finalized.

    Constructed like ``OSError(errno, strerror, filename)`` so the operating
    system's failure reason survives.
    """

    @classmethod
    def from_os_error(cls, exc: OSError, action: str, path: object) -> TileIOError:
        reason = exc.strerror or str(exc)
        if exc.errno is None:
            return cls(f"unable to {action} PNG file: {reason}: {path}")
        return cls(exc.errno, f"unable to {action} PNG file: {reason}", str(path))


class FormatError(TileError, ValueError):
    """A tile is not a valid PNG or does not match the requested layout."""

    def __init__(self, message: str, path: object = None) -> None:
        if path is not None:
            message = f"{message}: {path}"
        super().__init__(message)
        self.path = None if path is None else str(path)
