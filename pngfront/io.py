"""File helpers on top of the in-memory decode API."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Tuple, Union

from .config import DecodeOptions
from .pipeline import RgbaImage, decode_rgba

PathLike = Union[str, Path]


def load_png(path: PathLike, options: Optional[DecodeOptions] = None) -> RgbaImage:
    """Read a PNG file and decode it to RGBA8. Raises DecodeError on bad data."""
    data = Path(path).read_bytes()
    return decode_rgba(data, options=options)


def load_pngs(
    path1: PathLike,
    path2: PathLike,
    options: Optional[DecodeOptions] = None,
) -> Tuple[RgbaImage, RgbaImage]:
    """Decode two files concurrently; each call owns its own decoder and buffers."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(load_png, path1, options)
        second = pool.submit(load_png, path2, options)
        return first.result(), second.result()
