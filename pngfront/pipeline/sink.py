"""Binding a caller-owned destination buffer as the pixel sink."""

from __future__ import annotations

import numpy as np

from .contracts import ImageConfig
from .errors import SinkBindFailure
from .sizing import required_dest_len


def bind_pixel_sink(dest, config: ImageConfig, dest_len: int) -> np.ndarray:
    """Return a writable (H, W, 4) uint8 view over the first bytes of `dest`.

    The view aliases the caller's memory; nothing is copied and the buffer
    is never reallocated. Only the first `width * height * 4` bytes are
    covered, so a decode can never write past `dest_len`. A zero-pixel
    image gets a detached empty view and `dest` is not inspected further.
    """
    required = required_dest_len(config.width, config.height)
    if required > dest_len:
        raise SinkBindFailure(
            f"Sink geometry {config.width}x{config.height} needs {required} bytes, buffer has {dest_len}"
        )
    if required == 0:
        # Nothing will be written, so any buffer (even read-only) is acceptable
        return np.empty(config.shape, dtype=np.uint8)

    try:
        view = memoryview(dest)
    except TypeError as e:
        raise SinkBindFailure(f"Destination is not a buffer: {e}") from e
    if view.readonly:
        raise SinkBindFailure("Destination buffer is read-only")
    if not view.c_contiguous:
        raise SinkBindFailure("Destination buffer is not C-contiguous")

    flat = np.frombuffer(view.cast("B"), dtype=np.uint8)
    return flat[:required].reshape(config.shape)
