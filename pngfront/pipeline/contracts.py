"""Value types passed between the orchestrator stages and returned to callers.

The pixel layout is fixed: 4 channels, 8 bits per channel, alpha last,
non-premultiplied, row-major with no row padding.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np

BYTES_PER_PIXEL = 4


class DecodeStage(str, Enum):
    """Per-call state machine. Only START and the terminal states outlive a stage."""

    START = "start"
    CONFIG_PROBED = "config_probed"
    BUFFER_VALIDATED = "buffer_validated"
    SCRATCH_ACQUIRED = "scratch_acquired"
    FRAME_DECODED = "frame_decoded"
    DONE = "done"
    FAILED = "failed"


class BlendMode(str, Enum):
    # Decoded frame overwrites the sink; prior contents are never read.
    REPLACE = "replace"


@dataclass(frozen=True)
class ImageConfig:
    width: int
    height: int

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.height, self.width, BYTES_PER_PIXEL)


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of an entry point call.

    `width`/`height` are populated whenever the probe succeeded, including
    for statuses 3-6, and are 0 otherwise.
    """

    status: int
    width: int = 0
    height: int = 0

    @property
    def ok(self) -> bool:
        return self.status == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RgbaImage:
    """Decoded image owning its pixel buffer (H, W, 4) uint8."""

    data: np.ndarray
    width: int
    height: int

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self.data[y, x]
        return int(r), int(g), int(b), int(a)

    def tobytes(self) -> bytes:
        return self.data.tobytes()
