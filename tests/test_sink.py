"""Binding caller buffers as RGBA8 pixel sinks."""

from __future__ import annotations

import numpy as np
import pytest

from pngfront.pipeline import ImageConfig, SinkBindFailure, bind_pixel_sink


def test_sink_aliases_caller_memory():
    dest = bytearray(24)
    sink = bind_pixel_sink(dest, ImageConfig(3, 2), len(dest))
    assert sink.shape == (2, 3, 4)
    sink[1, 2] = (1, 2, 3, 4)
    assert dest[20:24] == bytes([1, 2, 3, 4])


def test_sink_covers_only_required_prefix():
    dest = bytearray(b"\xee" * 40)
    sink = bind_pixel_sink(dest, ImageConfig(2, 2), len(dest))
    sink[...] = 0
    assert dest[:16] == bytes(16)
    assert dest[16:] == b"\xee" * 24


def test_numpy_destination():
    dest = np.zeros((2, 2, 4), dtype=np.uint8)
    sink = bind_pixel_sink(dest, ImageConfig(2, 2), dest.nbytes)
    sink[0, 0, 3] = 9
    assert dest[0, 0, 3] == 9


def test_read_only_destination_fails():
    with pytest.raises(SinkBindFailure):
        bind_pixel_sink(bytes(16), ImageConfig(2, 2), 16)


def test_non_contiguous_destination_fails():
    dest = np.zeros((4, 4, 4), dtype=np.uint8)[:, ::2]
    with pytest.raises(SinkBindFailure):
        bind_pixel_sink(dest, ImageConfig(2, 2), dest.nbytes)


def test_geometry_larger_than_buffer_fails():
    with pytest.raises(SinkBindFailure):
        bind_pixel_sink(bytearray(15), ImageConfig(2, 2), 15)


def test_zero_size_sink():
    sink = bind_pixel_sink(bytearray(), ImageConfig(0, 0), 0)
    assert sink.size == 0


def test_zero_size_sink_accepts_read_only_buffer():
    sink = bind_pixel_sink(b"", ImageConfig(0, 3), 0)
    assert sink.shape == (3, 0, 4)
