"""PNG codec boundary for tile rasters."""

from .backends import (
    PillowBackend,
    VIPSBackend,
    get_backend,
    get_backend_name,
    is_vips_available,
)
from .png import (
    PngHeader,
    decode,
    encode,
    parse_header,
    read_header,
    validate_header,
)

__all__ = [
    "PillowBackend",
    "VIPSBackend",
    "get_backend",
    "get_backend_name",
    "is_vips_available",
    "PngHeader",
    "decode",
    "encode",
    "parse_header",
    "read_header",
    "validate_header",
]
