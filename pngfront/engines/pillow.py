"""PNG decode engine backed by Pillow.

Pillow manages its own working memory, so this engine asks for no scratch.
Pillow always verifies the CRCs of header chunks itself; `ignore_checksum`
is accepted for interface parity and has no effect here.

NOTE: Pillow converts 16-bit greyscale to 8 bits by clipping rather than
keeping the high byte, so 16-bit grey output differs from PngEngine.
"""

from __future__ import annotations

import io
import logging
import struct
import zlib
from typing import Optional

import numpy as np
from PIL import Image

from ..pipeline.contracts import BlendMode, ImageConfig
from ..pipeline.engine import EngineError, SourceReader

logger = logging.getLogger(__name__)

_PIL_ERRORS = (OSError, SyntaxError, ValueError, EOFError, IndexError, struct.error, zlib.error)


class PillowDecoder:
    def __init__(self, ignore_checksum: bool = True):
        self.ignore_checksum = ignore_checksum
        self._image: Optional[Image.Image] = None
        if ignore_checksum:
            logger.debug(
                "ignore_checksum has no effect on the pillow engine; Pillow verifies header chunk CRCs"
            )

    def probe(self, reader: SourceReader) -> ImageConfig:
        if self._image is not None:
            raise EngineError("Image config already decoded")
        data = bytes(reader.rest())
        try:
            img = Image.open(io.BytesIO(data), formats=["PNG"])
        except Image.DecompressionBombError as e:
            raise MemoryError(str(e)) from e
        except _PIL_ERRORS as e:
            raise EngineError(f"Invalid PNG: {e}") from e
        self._image = img
        reader.pos = len(reader)
        logger.debug("Pillow probe: mode=%s size=%s", img.mode, img.size)
        width, height = img.size
        return ImageConfig(width, height)

    def workbuf_len(self) -> int:
        return 0

    def decode(
        self,
        config: ImageConfig,
        reader: SourceReader,
        sink: np.ndarray,
        scratch: np.ndarray,
        blend: BlendMode = BlendMode.REPLACE,
    ) -> None:
        if self._image is None:
            raise EngineError("Image config has not been decoded")
        if blend is not BlendMode.REPLACE:
            raise EngineError(f"Unsupported blend mode: {blend}")
        if sink.shape != config.shape:
            raise EngineError(f"Sink shape {sink.shape} does not match {config.shape}")
        try:
            self._image.load()
            rgba = self._image.convert("RGBA")
        except _PIL_ERRORS as e:
            raise EngineError(f"Frame decode failed: {e}") from e
        arr = np.asarray(rgba, dtype=np.uint8)
        if arr.shape != sink.shape:
            raise EngineError(f"Decoded frame {arr.shape} does not match {sink.shape}")
        sink[...] = arr

    def close(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None


class PillowEngine:
    name = "pillow"

    def new_decoder(self, ignore_checksum: bool = True) -> PillowDecoder:
        return PillowDecoder(ignore_checksum=ignore_checksum)
