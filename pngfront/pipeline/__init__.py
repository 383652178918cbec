"""Pipeline package: probe + validate + scratch + frame decode.

This package is the authoritative implementation of the RGBA8 output contract.
"""

from .contracts import BYTES_PER_PIXEL, BlendMode, DecodeResult, DecodeStage, ImageConfig, RgbaImage
from .engine import DecodeEngine, Decoder, EngineError, SourceReader
from .errors import (
    BufferTooSmall,
    DecodeError,
    DecodeFailure,
    MalformedInput,
    ResourceExhausted,
    SinkBindFailure,
)
from .orchestrator import (
    decode_frame_into,
    decode_into,
    decode_rgba,
    probe_dimensions,
    read_config,
)
from .scratch import ScratchBuffer, acquire_scratch
from .sink import bind_pixel_sink
from .sizing import required_dest_len, validate_dest_len
from .status_codes import CODES, StatusCodes

__all__ = [
    "BYTES_PER_PIXEL",
    "BlendMode",
    "DecodeResult",
    "DecodeStage",
    "ImageConfig",
    "RgbaImage",
    "DecodeEngine",
    "Decoder",
    "EngineError",
    "SourceReader",
    "BufferTooSmall",
    "DecodeError",
    "DecodeFailure",
    "MalformedInput",
    "ResourceExhausted",
    "SinkBindFailure",
    "decode_frame_into",
    "decode_into",
    "decode_rgba",
    "probe_dimensions",
    "read_config",
    "ScratchBuffer",
    "acquire_scratch",
    "bind_pixel_sink",
    "required_dest_len",
    "validate_dest_len",
    "CODES",
    "StatusCodes",
]
