"""Error taxonomy raised by the decode orchestrator.

Each class maps onto exactly one status code (see `status_codes.py`),
except `ResourceExhausted` which covers both the decoder handle and the
scratch buffer and carries the code of whichever failed.
"""

from __future__ import annotations

from typing import Optional

from .contracts import DecodeStage, ImageConfig
from .status_codes import CODES


class DecodeError(ValueError):
    kind = "DecodeError"
    default_status = CODES.DECODE_FAILED

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        stage: DecodeStage = DecodeStage.START,
        config: Optional[ImageConfig] = None,
    ):
        super().__init__(message)
        self.status = self.default_status if status is None else status
        self.stage = stage
        self.config = config


class ResourceExhausted(DecodeError):
    kind = "ResourceExhausted"
    default_status = CODES.HANDLE_ALLOC_FAILED

    def __init__(self, message: str, resource: str = "decoder", **kwargs):
        if resource not in ("decoder", "scratch"):
            raise ValueError(f"Unknown resource: {resource}")
        status = CODES.SCRATCH_ALLOC_FAILED if resource == "scratch" else CODES.HANDLE_ALLOC_FAILED
        super().__init__(message, status=status, **kwargs)
        self.resource = resource


class MalformedInput(DecodeError):
    kind = "MalformedInput"
    default_status = CODES.MALFORMED_INPUT


class BufferTooSmall(DecodeError):
    kind = "BufferTooSmall"
    default_status = CODES.BUFFER_TOO_SMALL

    def __init__(self, required: int, actual: int, **kwargs):
        super().__init__(
            f"Destination buffer too small: need {required} bytes, got {actual}", **kwargs
        )
        self.required = required
        self.actual = actual


class SinkBindFailure(DecodeError):
    kind = "SinkBindFailure"
    default_status = CODES.SINK_BIND_FAILED


class DecodeFailure(DecodeError):
    kind = "DecodeFailure"
    default_status = CODES.DECODE_FAILED
