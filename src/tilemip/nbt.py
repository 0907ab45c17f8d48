"""Scalar payload decoding for world-data tags.

World metadata is stored as big-endian binary tags. This module covers the
fixed-size scalar payloads (byte, short, int, long, float, double): given a
type id, it reads exactly that many bytes from a :class:`ByteCursor` and
returns a :class:`ScalarTag`.
"""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import NamedTuple


class BufferUnderrunError(ValueError):
    """A fixed-size read ran past the end of the buffer."""


class ByteCursor:
    """Bounds-checked read position over a borrowed byte buffer.

    Reads return zero-copy ``memoryview`` slices of the underlying buffer.
    A read either returns exactly the requested number of bytes and
    advances, or raises :class:`BufferUnderrunError` and leaves the offset
    where it was.
    """

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0) -> None:
        self._view = memoryview(data).cast("B")
        if not 0 <= offset <= len(self._view):
            raise ValueError(f"Offset {offset} outside buffer of {len(self._view)} bytes")
        self._offset = offset

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._view) - self._offset

    def read(self, size: int) -> memoryview:
        if size < 0:
            raise ValueError(f"Read size must be non-negative, got {size}")
        if size > self.remaining:
            raise BufferUnderrunError(
                f"Cannot read {size} bytes at offset {self._offset}: "
                f"only {self.remaining} left"
            )
        start = self._offset
        self._offset += size
        return self._view[start : self._offset]


class TagType(IntEnum):
    """Type ids of the scalar tags."""

    BYTE = 1
    SHORT = 2
    INT = 3
    LONG = 4
    FLOAT = 5
    DOUBLE = 6


_SCALAR_STRUCTS: dict[TagType, struct.Struct] = {
    TagType.BYTE: struct.Struct(">b"),
    TagType.SHORT: struct.Struct(">h"),
    TagType.INT: struct.Struct(">i"),
    TagType.LONG: struct.Struct(">q"),
    TagType.FLOAT: struct.Struct(">f"),
    TagType.DOUBLE: struct.Struct(">d"),
}


class ScalarTag(NamedTuple):
    """A decoded scalar tag.

    Attributes:
        type: Tag type id
        value: int for integral tags, float for FLOAT and DOUBLE
    """

    type: TagType
    value: int | float


def payload_size(tag_type: int) -> int:
    """Number of payload bytes of a scalar tag type."""
    return _SCALAR_STRUCTS[_tag_type(tag_type)].size


def read_scalar(cursor: ByteCursor, tag_type: int) -> ScalarTag:
    """Decode one scalar payload at the cursor.

    Args:
        cursor: Positioned at the payload (after type id and name)
        tag_type: Type id of the tag

    Returns:
        ScalarTag with the decoded value

    Raises:
        ValueError: If ``tag_type`` is not a scalar type id
        BufferUnderrunError: If the buffer ends before the payload does
    """
    kind = _tag_type(tag_type)
    layout = _SCALAR_STRUCTS[kind]
    (value,) = layout.unpack(cursor.read(layout.size))
    return ScalarTag(kind, value)


def format_scalar(tag: ScalarTag) -> str:
    """Render a tag value for debug dumps."""
    if tag.type in (TagType.FLOAT, TagType.DOUBLE):
        return repr(float(tag.value))
    return str(tag.value)


def _tag_type(tag_type: int) -> TagType:
    try:
        return TagType(tag_type)
    except ValueError:
        raise ValueError(f"Not a scalar tag type: {tag_type}") from None
