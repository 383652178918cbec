"""PillowEngine, and parity of both engines against Pillow's own RGBA conversion."""

from __future__ import annotations

import io
import logging

import numpy as np
import pytest
from PIL import Image

from pngfront import DecodeOptions, decode_into, decode_rgba, probe_dimensions
from pngfront.engines import PillowEngine
from pngfront.pipeline import CODES
from png_factory import idat_offset, pillow_png, random_rgba

PILLOW = DecodeOptions(engine="pillow")


def _sample_images():
    rng = np.random.default_rng(21)
    rgba = Image.fromarray(random_rgba(7, 9, seed=1))
    rgb = rgba.convert("RGB")
    grey = Image.fromarray(rng.integers(0, 256, size=(5, 6), dtype=np.uint8))
    grey_alpha = Image.merge("LA", (grey, grey.point(lambda v: 255 - v)))
    bilevel = grey.point(lambda v: 255 if v > 127 else 0).convert("1")

    palette = Image.new("P", (4, 3))
    palette.putpalette([255, 0, 0, 0, 255, 0, 0, 0, 255, 9, 9, 9])
    palette.putdata([0, 1, 2, 3] * 3)
    return {
        "RGBA": (rgba, {}),
        "RGB": (rgb, {}),
        "L": (grey, {}),
        "LA": (grey_alpha, {}),
        "1": (bilevel, {}),
        "P": (palette, {"transparency": 0}),
    }


@pytest.mark.parametrize("mode", ["RGBA", "RGB", "L", "LA", "1", "P"])
@pytest.mark.parametrize("engine", ["png", "pillow"])
def test_matches_pillow_rgba_conversion(mode, engine):
    img, save_kwargs = _sample_images()[mode]
    png = pillow_png(img, **save_kwargs)
    expected = np.asarray(Image.open(io.BytesIO(png)).convert("RGBA"))

    decoded = decode_rgba(png, options=DecodeOptions(engine=engine))
    assert (decoded.width, decoded.height) == img.size
    assert np.array_equal(decoded.data, expected)


def test_red_pixel():
    png = pillow_png(Image.new("RGB", (1, 1), (255, 0, 0)))
    for engine in ("png", "pillow"):
        dest = bytearray(4)
        assert decode_into(png, dest, options=DecodeOptions(engine=engine)).status == CODES.OK
        assert tuple(dest) == (255, 0, 0, 255)


def test_needs_no_scratch(rgba_png, rgba_pixels):
    calls = []

    def allocator(length):
        calls.append(length)
        return np.empty(length, dtype=np.uint8)

    dest = bytearray(rgba_pixels.nbytes)
    assert decode_into(rgba_png, dest, options=PILLOW, allocator=allocator).status == CODES.OK
    assert calls == []
    assert bytes(dest) == rgba_pixels.tobytes()


def test_explicit_engine_overrides_options(rgba_png):
    result = probe_dimensions(rgba_png, engine=PillowEngine())
    assert (result.status, result.width, result.height) == (CODES.OK, 5, 6)


def test_malformed_input():
    assert probe_dimensions(b"GIF89a....", options=PILLOW).status == CODES.MALFORMED_INPUT
    assert decode_into(b"", bytearray(16), options=PILLOW).status == CODES.MALFORMED_INPUT


def test_truncated_pixel_data(rgba_png):
    cut = rgba_png[: idat_offset(rgba_png) + 20]
    assert probe_dimensions(cut, options=PILLOW).status == CODES.OK
    assert decode_into(cut, bytearray(120), options=PILLOW).status == CODES.DECODE_FAILED


def test_undersized_destination(rgba_png):
    result = decode_into(rgba_png, bytearray(10), options=PILLOW)
    assert (result.status, result.width, result.height) == (CODES.BUFFER_TOO_SMALL, 5, 6)


def test_header_crc_checked_by_pillow_even_when_ignoring(rgba_png, caplog):
    bad = bytearray(rgba_png)
    bad[29] ^= 0xFF  # IHDR CRC
    bad = bytes(bad)

    with caplog.at_level(logging.DEBUG, logger="pngfront.engines.pillow"):
        assert probe_dimensions(bad, options=PILLOW).status == CODES.MALFORMED_INPUT
    assert "no effect on the pillow engine" in caplog.text
    assert probe_dimensions(bad).status == CODES.OK
