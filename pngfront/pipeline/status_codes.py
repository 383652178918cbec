"""Status code taxonomy.

These are the integer codes returned by the two entry points
(`probe_dimensions`, `decode_into`). They are stable: callers may
persist or compare them across releases.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StatusCodes:
    OK: int = 0

    # Resource acquisition
    HANDLE_ALLOC_FAILED: int = 1

    # Input integrity
    MALFORMED_INPUT: int = 2

    # Caller contract
    BUFFER_TOO_SMALL: int = 3
    SINK_BIND_FAILED: int = 4

    # Resource acquisition (per-image working memory)
    SCRATCH_ALLOC_FAILED: int = 5

    # Pixel reconstruction
    DECODE_FAILED: int = 6


CODES = StatusCodes()
