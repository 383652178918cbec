"""Per-call scratch (working) memory.

The engine declares an upper bound for the transient memory it needs
for one specific image; the orchestrator acquires exactly that much,
hands it to the engine for the frame decode and releases it afterwards.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import numpy as np

from .errors import ResourceExhausted

logger = logging.getLogger(__name__)

Allocator = Callable[[int], np.ndarray]


def default_allocator(length: int) -> np.ndarray:
    return np.empty(length, dtype=np.uint8)


class ScratchBuffer:
    """Owned working buffer; `array` is unavailable once released."""

    def __init__(self, array: np.ndarray):
        self._array: Optional[np.ndarray] = array

    @property
    def released(self) -> bool:
        return self._array is None

    @property
    def array(self) -> np.ndarray:
        if self._array is None:
            raise RuntimeError("Scratch buffer used after release")
        return self._array

    def release(self) -> None:
        self._array = None


def _empty_scratch() -> np.ndarray:
    arr = np.empty(0, dtype=np.uint8)
    arr.flags.writeable = False
    return arr


@contextmanager
def acquire_scratch(
    length: int,
    limit: Optional[int] = None,
    allocator: Optional[Allocator] = None,
) -> Iterator[ScratchBuffer]:
    """Acquire `length` bytes of scratch for the duration of the block.

    A zero length is satisfied without calling the allocator. Exceeding
    `limit` or an allocator failure raises ResourceExhausted("scratch").
    """
    if length < 0:
        raise ValueError(f"Negative scratch length: {length}")

    if length == 0:
        scratch = ScratchBuffer(_empty_scratch())
    else:
        if limit is not None and length > limit:
            raise ResourceExhausted(
                f"Scratch request of {length} bytes exceeds limit of {limit}",
                resource="scratch",
            )
        alloc = allocator or default_allocator
        try:
            arr = alloc(length)
        except (MemoryError, ValueError) as e:
            raise ResourceExhausted(
                f"Failed to allocate {length} bytes of scratch: {e}",
                resource="scratch",
            ) from e
        if arr.nbytes < length:
            raise ResourceExhausted(
                f"Allocator returned {arr.nbytes} bytes, {length} requested",
                resource="scratch",
            )
        scratch = ScratchBuffer(arr.reshape(-1).view(np.uint8)[:length])
        logger.debug("Acquired %d bytes of scratch", length)

    try:
        yield scratch
    finally:
        scratch.release()
