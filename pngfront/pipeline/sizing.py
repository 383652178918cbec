"""Destination buffer sizing.

Dimensions come from untrusted input, so the product is computed on
Python ints (no wraparound) and validated before any buffer is touched.
"""

from __future__ import annotations

from typing import Optional

from .contracts import BYTES_PER_PIXEL, ImageConfig
from .errors import BufferTooSmall, SinkBindFailure


def required_dest_len(width: int, height: int) -> int:
    """Exact byte length of an RGBA8 buffer for `width` x `height` pixels."""
    if isinstance(width, bool) or isinstance(height, bool):
        raise TypeError("Dimensions must be integers")
    width = int(width)
    height = int(height)
    if width < 0 or height < 0:
        raise ValueError(f"Negative dimensions: {width}x{height}")
    return width * height * BYTES_PER_PIXEL


def buffer_length(buf, declared: Optional[int] = None) -> int:
    """Byte length of a bytes-like object, optionally narrowed to `declared`.

    Raises SinkBindFailure if `buf` does not expose the buffer protocol and
    ValueError if `declared` exceeds what the object actually holds.
    """
    try:
        with memoryview(buf) as view:
            nbytes = view.nbytes
    except TypeError as e:
        raise SinkBindFailure(f"Object does not expose a byte buffer: {e}") from e
    if declared is None:
        return nbytes
    if declared < 0 or declared > nbytes:
        raise ValueError(f"Declared length {declared} outside buffer of {nbytes} bytes")
    return declared


def validate_dest_len(config: ImageConfig, dest_len: int) -> int:
    """Return the required length, or raise BufferTooSmall."""
    required = required_dest_len(config.width, config.height)
    if dest_len < required:
        raise BufferTooSmall(required, dest_len, config=config)
    return required
