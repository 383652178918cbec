"""Decode engine capability.

An engine is anything that can hand out per-call decoders. A decoder is
a short-lived session:

    decoder = engine.new_decoder(ignore_checksum=True)
    config = decoder.probe(reader)              # header only
    n = decoder.workbuf_len()                   # scratch needed for this image
    decoder.decode(config, reader, sink, scratch, blend)
    decoder.close()

Engines raise EngineError for anything wrong with the encoded data and
MemoryError when they cannot acquire their own resources. Mapping those
onto status codes is the orchestrator's job, not the engine's.
"""

from __future__ import annotations

from typing import Optional, Protocol

import numpy as np

from .contracts import BlendMode, ImageConfig


class EngineError(Exception):
    """Encoded data could not be parsed or reconstructed."""


class SourceReader:
    """Read cursor over an immutable source buffer.

    Shared between the probe and decode phases of one decoder so that the
    frame decode resumes where the header parse stopped.
    """

    def __init__(self, source, length: Optional[int] = None):
        view = memoryview(source)
        if not view.c_contiguous:
            raise ValueError("Source buffer must be C-contiguous")
        view = view.cast("B")
        if length is not None:
            if length < 0 or length > view.nbytes:
                raise ValueError(f"Declared source length {length} outside buffer of {view.nbytes} bytes")
            view = view[:length]
        self._view = view.toreadonly()
        self.pos = 0

    def __len__(self) -> int:
        return self._view.nbytes

    @property
    def remaining(self) -> int:
        return self._view.nbytes - self.pos

    def peek(self, n: int) -> memoryview:
        return self._view[self.pos:self.pos + n]

    def read(self, n: int) -> memoryview:
        if n > self.remaining:
            raise EngineError(f"Truncated input: need {n} bytes at offset {self.pos}, have {self.remaining}")
        out = self._view[self.pos:self.pos + n]
        self.pos += n
        return out

    def read_u32be(self) -> int:
        return int.from_bytes(self.read(4), "big")

    def rest(self) -> memoryview:
        return self._view[self.pos:]


class Decoder(Protocol):
    def probe(self, reader: SourceReader) -> ImageConfig: ...

    def workbuf_len(self) -> int: ...

    def decode(
        self,
        config: ImageConfig,
        reader: SourceReader,
        sink: np.ndarray,
        scratch: np.ndarray,
        blend: BlendMode = BlendMode.REPLACE,
    ) -> None: ...

    def close(self) -> None: ...


class DecodeEngine(Protocol):
    name: str

    def new_decoder(self, ignore_checksum: bool = True) -> Decoder: ...
