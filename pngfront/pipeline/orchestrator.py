"""Decode orchestrator: probe -> validate -> scratch -> frame decode.

Two entry points return integer status codes and never raise for bad
input:

- `probe_dimensions`: header only
- `decode_into`: full decode into a caller-owned RGBA8 buffer

`read_config` and `decode_frame_into` are the raising equivalents;
the entry points are thin wrappers that turn a DecodeError into a
DecodeResult.

Every call owns exactly one decoder handle and at most one scratch
buffer, both released before the call returns on every path. Nothing
is kept between calls.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np

from ..config import DecodeOptions
from .contracts import BlendMode, DecodeResult, DecodeStage, ImageConfig, RgbaImage
from .engine import DecodeEngine, Decoder, EngineError, SourceReader
from .errors import DecodeError, DecodeFailure, MalformedInput, ResourceExhausted
from .scratch import Allocator, ScratchBuffer, acquire_scratch
from .sink import bind_pixel_sink
from .sizing import buffer_length, validate_dest_len
from .status_codes import CODES

logger = logging.getLogger(__name__)


def _resolve_engine(engine: Optional[DecodeEngine], options: DecodeOptions) -> DecodeEngine:
    if engine is not None:
        return engine
    from ..engines import get_engine

    return get_engine(options.engine)


@contextmanager
def open_decoder(engine: DecodeEngine, options: DecodeOptions) -> Iterator[Decoder]:
    """One decoder handle per call, closed on exit."""
    try:
        decoder = engine.new_decoder(ignore_checksum=options.ignore_checksum)
    except MemoryError as e:
        raise ResourceExhausted(f"Failed to allocate {engine.name} decoder: {e}", resource="decoder") from e
    try:
        yield decoder
    finally:
        decoder.close()


def probe_config(decoder: Decoder, reader: SourceReader) -> ImageConfig:
    """Stage 1: parse the header. Never touches a destination buffer."""
    try:
        config = decoder.probe(reader)
    except EngineError as e:
        raise MalformedInput(f"Invalid image header: {e}") from e
    except MemoryError as e:
        raise ResourceExhausted(f"Decoder could not allocate while probing: {e}", resource="decoder") from e
    logger.debug("Probed %dx%d", config.width, config.height)
    return config


def decode_frame(
    decoder: Decoder,
    config: ImageConfig,
    reader: SourceReader,
    sink: np.ndarray,
    scratch: ScratchBuffer,
) -> None:
    """Stage 4: drive the engine to completion with REPLACE blending."""
    try:
        decoder.decode(config, reader, sink, scratch.array, BlendMode.REPLACE)
    except EngineError as e:
        raise DecodeFailure(f"Frame decode failed: {e}") from e
    except MemoryError as e:
        raise ResourceExhausted(f"Decoder ran out of working memory: {e}", resource="scratch") from e


def _annotate(e: DecodeError, stage: DecodeStage, config: Optional[ImageConfig]) -> None:
    e.stage = stage
    if e.config is None:
        e.config = config
    logger.debug(
        "%s -> %s: %s (status %d): %s", stage.value, DecodeStage.FAILED.value, e.kind, e.status, e
    )


def _drop_frame_locals(e: BaseException) -> None:
    """Clear finished frames on the traceback chain.

    Engine frames hold numpy views of the destination; while they live a
    bytearray destination cannot be resized by a caller handling `e`.
    """
    seen = set()
    while e is not None and id(e) not in seen:
        seen.add(id(e))
        traceback.clear_frames(e.__traceback__)
        e = e.__cause__ or e.__context__


def read_config(
    source,
    source_len: Optional[int] = None,
    *,
    options: Optional[DecodeOptions] = None,
    engine: Optional[DecodeEngine] = None,
) -> ImageConfig:
    """Probe `source` and return its dimensions; raises DecodeError."""
    options = options or DecodeOptions()
    engine = _resolve_engine(engine, options)
    reader = SourceReader(source, source_len)
    try:
        with open_decoder(engine, options) as decoder:
            return probe_config(decoder, reader)
    except DecodeError as e:
        _annotate(e, DecodeStage.START, None)
        raise


def decode_frame_into(
    source,
    dest,
    source_len: Optional[int] = None,
    dest_len: Optional[int] = None,
    *,
    options: Optional[DecodeOptions] = None,
    engine: Optional[DecodeEngine] = None,
    allocator: Optional[Allocator] = None,
) -> ImageConfig:
    """Decode the first frame of `source` into `dest` as RGBA8; raises DecodeError.

    `dest` is written, never read or resized. On failure its contents are
    undefined.
    """
    options = options or DecodeOptions()
    engine = _resolve_engine(engine, options)
    reader = SourceReader(source, source_len)
    stage = DecodeStage.START
    config: Optional[ImageConfig] = None
    sink: Optional[np.ndarray] = None

    try:
        with open_decoder(engine, options) as decoder:
            config = probe_config(decoder, reader)
            stage = DecodeStage.CONFIG_PROBED

            available = buffer_length(dest, dest_len)
            validate_dest_len(config, available)
            stage = DecodeStage.BUFFER_VALIDATED

            sink = bind_pixel_sink(dest, config, available)
            with acquire_scratch(decoder.workbuf_len(), options.max_scratch_bytes, allocator) as scratch:
                stage = DecodeStage.SCRATCH_ACQUIRED
                decode_frame(decoder, config, reader, sink, scratch)
                stage = DecodeStage.FRAME_DECODED
    except DecodeError as e:
        sink = None
        _annotate(e, stage, config)
        _drop_frame_locals(e)
        raise

    logger.debug("Decoded %dx%d (%s)", config.width, config.height, DecodeStage.DONE.value)
    return config


def _result_from_error(e: DecodeError) -> DecodeResult:
    if e.config is None:
        return DecodeResult(e.status)
    return DecodeResult(e.status, e.config.width, e.config.height)


def probe_dimensions(
    source,
    source_len: Optional[int] = None,
    *,
    options: Optional[DecodeOptions] = None,
    engine: Optional[DecodeEngine] = None,
) -> DecodeResult:
    """Status 0 with dimensions, 1 if the decoder could not be allocated, 2 for malformed input."""
    try:
        config = read_config(source, source_len, options=options, engine=engine)
    except DecodeError as e:
        return _result_from_error(e)
    return DecodeResult(CODES.OK, config.width, config.height)


def decode_into(
    source,
    dest,
    source_len: Optional[int] = None,
    dest_len: Optional[int] = None,
    *,
    options: Optional[DecodeOptions] = None,
    engine: Optional[DecodeEngine] = None,
    allocator: Optional[Allocator] = None,
) -> DecodeResult:
    """Decode into a caller-owned buffer of at least width * height * 4 bytes.

    Status codes: 0 ok, 1 decoder allocation failed, 2 malformed input,
    3 destination too small, 4 destination not bindable as a pixel sink,
    5 scratch allocation failed, 6 frame decode failed.
    """
    try:
        config = decode_frame_into(
            source,
            dest,
            source_len,
            dest_len,
            options=options,
            engine=engine,
            allocator=allocator,
        )
    except DecodeError as e:
        return _result_from_error(e)
    return DecodeResult(CODES.OK, config.width, config.height)


def decode_rgba(
    source,
    *,
    options: Optional[DecodeOptions] = None,
    engine: Optional[DecodeEngine] = None,
) -> RgbaImage:
    """Probe, allocate an exactly sized buffer, decode. Raises DecodeError."""
    config = read_config(source, options=options, engine=engine)
    data = np.empty(config.shape, dtype=np.uint8)
    decode_frame_into(source, data, options=options, engine=engine)
    return RgbaImage(data=data, width=config.width, height=config.height)
