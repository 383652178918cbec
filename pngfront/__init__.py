"""pngfront: bounded RGBA8 decode front-end for PNG.

This package is the single entry point for turning untrusted PNG bytes
into pixels:
- probe dimensions without decoding (`probe_dimensions`)
- decode into a caller-owned buffer with a fixed RGBA8 layout (`decode_into`)
- stable integer status codes for every failure (`CODES`)

The decode engine is pluggable (see `pngfront.engines`).
"""

from .config import DecodeOptions, load_options, options_from_dict
from .pipeline import (
    CODES,
    BufferTooSmall,
    DecodeError,
    DecodeFailure,
    DecodeResult,
    ImageConfig,
    MalformedInput,
    ResourceExhausted,
    RgbaImage,
    SinkBindFailure,
    decode_into,
    decode_rgba,
    probe_dimensions,
    required_dest_len,
)

__version__ = "0.1.0"

__all__ = [
    "CODES",
    "BufferTooSmall",
    "DecodeError",
    "DecodeFailure",
    "DecodeOptions",
    "DecodeResult",
    "ImageConfig",
    "MalformedInput",
    "ResourceExhausted",
    "RgbaImage",
    "SinkBindFailure",
    "decode_into",
    "decode_rgba",
    "load_options",
    "options_from_dict",
    "probe_dimensions",
    "required_dest_len",
]
