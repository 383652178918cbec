"""PNG decode engine built on zlib and numpy.

Supports every bit depth / colour type combination of the PNG standard,
Adam7 interlacing and tRNS transparency. Output is always RGBA8,
non-premultiplied:

- 16-bit samples keep their high byte
- 1/2/4-bit grey is scaled to the full 0..255 range
- palette indices past the end of PLTE decode as opaque black

The engine is two-phase. `probe` parses chunks up to the first IDAT and
stops there; `decode` resumes from the same reader, inflates the IDAT
stream into the caller-provided scratch buffer, reverses the scanline
filters in place and expands the result into the sink.
"""

from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..pipeline.contracts import BlendMode, ImageConfig
from ..pipeline.engine import EngineError, SourceReader

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
MAX_CHUNK_LEN = 0x7FFFFFFF
MAX_DIMENSION = 0x7FFFFFFF

# colour type -> (channels, legal bit depths)
COLOR_TYPES = {
    0: (1, (1, 2, 4, 8, 16)),  # grey
    2: (3, (8, 16)),  # RGB
    3: (1, (1, 2, 4, 8)),  # palette index
    4: (2, (8, 16)),  # grey + alpha
    6: (4, (8, 16)),  # RGBA
}

# Adam7 passes as (x0, y0, dx, dy)
ADAM7 = (
    (0, 0, 8, 8),
    (4, 0, 8, 8),
    (0, 4, 4, 8),
    (2, 0, 4, 4),
    (0, 2, 2, 4),
    (1, 0, 2, 2),
    (0, 1, 1, 2),
)

Pass = Tuple[int, int, int, int, int, int]  # x0, y0, dx, dy, width, height


@dataclass(frozen=True)
class PngHeader:
    width: int
    height: int
    bit_depth: int
    color_type: int
    interlace: int

    @property
    def channels(self) -> int:
        return COLOR_TYPES[self.color_type][0]

    @property
    def bits_per_pixel(self) -> int:
        return self.channels * self.bit_depth

    @property
    def filter_distance(self) -> int:
        return max(1, self.bits_per_pixel // 8)

    def row_bytes(self, width: int) -> int:
        return (width * self.bits_per_pixel + 7) // 8

    def passes(self) -> List[Pass]:
        """Non-empty sub-images in stream order."""
        if not self.interlace:
            return [(0, 0, 1, 1, self.width, self.height)]
        out: List[Pass] = []
        for x0, y0, dx, dy in ADAM7:
            pw = (self.width - x0 + dx - 1) // dx if self.width > x0 else 0
            ph = (self.height - y0 + dy - 1) // dy if self.height > y0 else 0
            if pw and ph:
                out.append((x0, y0, dx, dy, pw, ph))
        return out

    def filtered_len(self) -> int:
        return sum(ph * (1 + self.row_bytes(pw)) for _, _, _, _, pw, ph in self.passes())


def parse_ihdr(data: bytes) -> PngHeader:
    if len(data) != 13:
        raise EngineError(f"Bad IHDR length: {len(data)}")
    width = int.from_bytes(data[0:4], "big")
    height = int.from_bytes(data[4:8], "big")
    bit_depth, color_type, compression, filter_method, interlace = data[8:13]

    if width == 0 or height == 0 or width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise EngineError(f"Bad dimensions: {width}x{height}")
    if color_type not in COLOR_TYPES:
        raise EngineError(f"Bad colour type: {color_type}")
    if bit_depth not in COLOR_TYPES[color_type][1]:
        raise EngineError(f"Bad bit depth {bit_depth} for colour type {color_type}")
    if compression != 0:
        raise EngineError(f"Unsupported compression method: {compression}")
    if filter_method != 0:
        raise EngineError(f"Unsupported filter method: {filter_method}")
    if interlace not in (0, 1):
        raise EngineError(f"Unsupported interlace method: {interlace}")

    return PngHeader(width, height, bit_depth, color_type, interlace)


def check_zlib_header(cmf: int, flg: int) -> None:
    if cmf & 0x0F != 8 or cmf >> 4 > 7:
        raise EngineError(f"Bad zlib compression method: 0x{cmf:02x}")
    if (cmf << 8 | flg) % 31 != 0:
        raise EngineError("Bad zlib header check bits")
    if flg & 0x20:
        raise EngineError("zlib preset dictionary not allowed in PNG")


def _is_chunk_type(ctype: bytes) -> bool:
    return len(ctype) == 4 and all(65 <= c <= 90 or 97 <= c <= 122 for c in ctype)


def _is_ancillary(ctype: bytes) -> bool:
    return bool(ctype[0] & 0x20)


def paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa = abs(p - a)
    pb = abs(p - b)
    pc = abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def unfilter_rows(rows: np.ndarray, distance: int) -> None:
    """Reverse scanline filters in place.

    `rows` is (H, 1 + row_bytes): the filter type byte followed by the
    filtered row. Reconstructed bytes replace the filtered ones.
    """
    prev: Optional[np.ndarray] = None
    for y in range(rows.shape[0]):
        ftype = int(rows[y, 0])
        line = rows[y, 1:]
        if ftype == 0:
            pass
        elif ftype == 1:
            _unfilter_sub(line, distance)
        elif ftype == 2:
            if prev is not None:
                line += prev
        elif ftype == 3:
            _unfilter_average(line, prev, distance)
        elif ftype == 4:
            if prev is None:
                # Paeth with an all-zero prior row reduces to Sub
                _unfilter_sub(line, distance)
            else:
                _unfilter_paeth(line, prev, distance)
        else:
            raise EngineError(f"Bad filter type {ftype} on row {y}")
        prev = line


def _unfilter_sub(line: np.ndarray, distance: int) -> None:
    # Row length is a whole number of pixels (or bytes below 8 bits per pixel)
    grid = line.reshape(-1, distance)
    np.add.accumulate(grid, axis=0, dtype=np.uint8, out=grid)


def _unfilter_average(line: np.ndarray, prev: Optional[np.ndarray], distance: int) -> None:
    cur = line.tolist()
    up = prev.tolist() if prev is not None else [0] * len(cur)
    for i in range(len(cur)):
        left = cur[i - distance] if i >= distance else 0
        cur[i] = (cur[i] + ((left + up[i]) >> 1)) & 0xFF
    line[:] = cur


def _unfilter_paeth(line: np.ndarray, prev: np.ndarray, distance: int) -> None:
    cur = line.tolist()
    up = prev.tolist()
    for i in range(len(cur)):
        if i >= distance:
            cur[i] = (cur[i] + paeth(cur[i - distance], up[i], up[i - distance])) & 0xFF
        else:
            cur[i] = (cur[i] + up[i]) & 0xFF
    line[:] = cur


def unpack_samples(data: np.ndarray, bit_depth: int, width: int) -> np.ndarray:
    """Split packed 1/2/4-bit rows (H, row_bytes) into one sample per pixel (H, width)."""
    per_byte = 8 // bit_depth
    mask = (1 << bit_depth) - 1
    shifts = np.arange(8 - bit_depth, -1, -bit_depth, dtype=np.uint8)
    samples = (data[:, :, None] >> shifts) & mask
    return samples.reshape(data.shape[0], data.shape[1] * per_byte)[:, :width]


class PngDecoder:
    """One decode session. Not reusable across images."""

    def __init__(self, ignore_checksum: bool = True):
        self.ignore_checksum = ignore_checksum
        self._header: Optional[PngHeader] = None
        self._palette: Optional[np.ndarray] = None
        self._palette_size = 0
        self._trns: Optional[bytes] = None
        self._closed = False

    # -- chunk framing -------------------------------------------------

    def _peek_chunk_type(self, reader: SourceReader) -> bytes:
        head = reader.peek(8)
        if len(head) < 8:
            raise EngineError(f"Truncated chunk header at offset {reader.pos}")
        ctype = bytes(head[4:8])
        if not _is_chunk_type(ctype):
            raise EngineError(f"Bad chunk type {ctype!r} at offset {reader.pos}")
        return ctype

    def _read_chunk(self, reader: SourceReader) -> Tuple[bytes, memoryview]:
        length = reader.read_u32be()
        if length > MAX_CHUNK_LEN:
            raise EngineError(f"Chunk length {length} exceeds PNG limit")
        ctype = bytes(reader.read(4))
        if not _is_chunk_type(ctype):
            raise EngineError(f"Bad chunk type {ctype!r}")
        data = reader.read(length)
        crc = reader.read_u32be()
        if not self.ignore_checksum and zlib.crc32(data, zlib.crc32(ctype)) != crc:
            raise EngineError(f"Bad CRC in {ctype.decode('ascii')} chunk")
        return ctype, data

    # -- probe ---------------------------------------------------------

    def probe(self, reader: SourceReader) -> ImageConfig:
        self._check_open()
        if self._header is not None:
            raise EngineError("Image config already decoded")

        if bytes(reader.peek(len(PNG_SIGNATURE))) != PNG_SIGNATURE:
            raise EngineError("Bad PNG signature")
        reader.read(len(PNG_SIGNATURE))

        ctype, data = self._read_chunk(reader)
        if ctype != b"IHDR":
            raise EngineError(f"First chunk is {ctype!r}, expected IHDR")
        header = parse_ihdr(bytes(data))

        while self._peek_chunk_type(reader) != b"IDAT":
            ctype, data = self._read_chunk(reader)
            if ctype == b"PLTE":
                self._parse_plte(bytes(data), header)
            elif ctype == b"tRNS":
                self._parse_trns(bytes(data), header)
            elif ctype == b"IHDR":
                raise EngineError("Duplicate IHDR chunk")
            elif ctype == b"IEND":
                raise EngineError("IEND before any IDAT")
            elif not _is_ancillary(ctype):
                raise EngineError(f"Unsupported critical chunk {ctype!r}")

        if header.color_type == 3 and self._palette is None:
            raise EngineError("Missing PLTE for palette image")

        self._header = header
        self._build_palette()
        logger.debug(
            "PNG header: %dx%d depth=%d colour_type=%d interlace=%d",
            header.width,
            header.height,
            header.bit_depth,
            header.color_type,
            header.interlace,
        )
        return ImageConfig(header.width, header.height)

    def _parse_plte(self, data: bytes, header: PngHeader) -> None:
        if self._palette is not None:
            raise EngineError("Duplicate PLTE chunk")
        if header.color_type in (0, 4):
            raise EngineError("PLTE not allowed for greyscale images")
        if self._trns is not None:
            raise EngineError("PLTE after tRNS")
        if len(data) == 0 or len(data) % 3 or len(data) > 256 * 3:
            raise EngineError(f"Bad PLTE length: {len(data)}")
        if header.color_type != 3:
            # Suggested palette for truecolour images; not used for decoding
            return
        self._palette_size = len(data) // 3
        self._palette = np.frombuffer(data, dtype=np.uint8).reshape(-1, 3).copy()

    def _parse_trns(self, data: bytes, header: PngHeader) -> None:
        if self._trns is not None:
            raise EngineError("Duplicate tRNS chunk")
        ct = header.color_type
        if ct == 0 and len(data) != 2:
            raise EngineError(f"Bad tRNS length for greyscale: {len(data)}")
        if ct == 2 and len(data) != 6:
            raise EngineError(f"Bad tRNS length for truecolour: {len(data)}")
        if ct == 3:
            if self._palette is None:
                raise EngineError("tRNS before PLTE")
            if len(data) > self._palette_size:
                raise EngineError("tRNS has more entries than PLTE")
        if ct in (4, 6):
            raise EngineError("tRNS not allowed for images with an alpha channel")
        self._trns = data

    def _build_palette(self) -> None:
        if self._header.color_type != 3:
            return
        table = np.zeros((256, 4), dtype=np.uint8)
        table[:, 3] = 0xFF
        table[: self._palette_size, :3] = self._palette
        if self._trns:
            table[: len(self._trns), 3] = np.frombuffer(self._trns, dtype=np.uint8)
        self._palette = table

    # -- decode --------------------------------------------------------

    def workbuf_len(self) -> int:
        return self._require_header().filtered_len()

    def decode(
        self,
        config: ImageConfig,
        reader: SourceReader,
        sink: np.ndarray,
        scratch: np.ndarray,
        blend: BlendMode = BlendMode.REPLACE,
    ) -> None:
        self._check_open()
        header = self._require_header()
        if blend is not BlendMode.REPLACE:
            raise EngineError(f"Unsupported blend mode: {blend}")
        if (config.width, config.height) != (header.width, header.height):
            raise EngineError("Config does not match the probed header")
        if sink.shape != config.shape or sink.dtype != np.uint8:
            raise EngineError(f"Sink shape {sink.shape} does not match {config.shape}")

        need = header.filtered_len()
        if scratch.nbytes < need:
            raise EngineError(f"Scratch of {scratch.nbytes} bytes, {need} needed")
        work = scratch[:need]
        self._inflate_into(reader, work)

        offset = 0
        for x0, y0, dx, dy, pw, ph in header.passes():
            stride = 1 + header.row_bytes(pw)
            rows = work[offset : offset + ph * stride].reshape(ph, stride)
            offset += ph * stride
            unfilter_rows(rows, header.filter_distance)
            sink[y0::dy, x0::dx] = self._expand(rows[:, 1:], pw)

    def _inflate_into(self, reader: SourceReader, work: np.ndarray) -> None:
        need = work.nbytes
        verify = not self.ignore_checksum
        # With checksums ignored the zlib header is checked here and the
        # Adler-32 trailer is left unread by a raw inflater.
        inflater = zlib.decompressobj(zlib.MAX_WBITS if verify else -zlib.MAX_WBITS)
        zlib_header = bytearray()
        filled = 0
        seen_idat = False

        while reader.remaining and self._peek_chunk_type(reader) == b"IDAT":
            _, data = self._read_chunk(reader)
            seen_idat = True
            if len(zlib_header) < 2:
                take = min(2 - len(zlib_header), len(data))
                zlib_header += data[:take]
                if len(zlib_header) == 2:
                    check_zlib_header(zlib_header[0], zlib_header[1])
                if not verify:
                    data = data[take:]

            buf = data
            while len(buf) and not inflater.eof:
                room = need - filled
                try:
                    out = inflater.decompress(buf, room + 1)
                except zlib.error as e:
                    raise EngineError(f"Corrupt compressed data: {e}") from e
                if len(out) > room:
                    raise EngineError("Too much pixel data")
                if out:
                    work[filled : filled + len(out)] = np.frombuffer(out, dtype=np.uint8)
                    filled += len(out)
                buf = inflater.unconsumed_tail

        if not seen_idat:
            raise EngineError("Missing IDAT chunk")
        if filled < need:
            raise EngineError(f"Not enough pixel data: {filled} of {need} bytes")
        if verify and not inflater.eof:
            raise EngineError("Compressed stream ends before its checksum")

    def _expand(self, data: np.ndarray, width: int) -> np.ndarray:
        """Convert reconstructed rows (H, row_bytes) to RGBA8 (H, width, 4)."""
        header = self._header
        depth = header.bit_depth
        ct = header.color_type
        n_rows = data.shape[0]

        if depth < 8:
            raw = unpack_samples(data, depth, width)[:, :, None]
            samples = raw
        elif depth == 8:
            raw = data.reshape(n_rows, width, header.channels)
            samples = raw
        else:
            pairs = data.reshape(n_rows, width, header.channels, 2)
            raw = (pairs[..., 0].astype(np.uint16) << 8) | pairs[..., 1]
            samples = pairs[..., 0]

        out = np.empty((n_rows, width, 4), dtype=np.uint8)

        if ct == 3:
            out[...] = self._palette[samples[..., 0]]
            return out

        if ct in (0, 4):
            grey = samples[..., 0]
            if depth < 8:
                grey = grey * (0xFF // ((1 << depth) - 1))
            out[..., 0] = grey
            out[..., 1] = grey
            out[..., 2] = grey
        else:
            out[..., :3] = samples[..., :3]

        if ct in (4, 6):
            out[..., 3] = samples[..., -1]
        else:
            out[..., 3] = 0xFF
            if self._trns is not None:
                key = np.frombuffer(self._trns, dtype=">u2").astype(np.uint16)
                out[..., 3][np.all(raw == key, axis=-1)] = 0
        return out

    # -- lifecycle -----------------------------------------------------

    def _require_header(self) -> PngHeader:
        if self._header is None:
            raise EngineError("Image config has not been decoded")
        return self._header

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Decoder used after close")

    def close(self) -> None:
        self._closed = True
        self._header = None
        self._palette = None
        self._trns = None


class PngEngine:
    name = "png"

    def new_decoder(self, ignore_checksum: bool = True) -> PngDecoder:
        return PngDecoder(ignore_checksum=ignore_checksum)
