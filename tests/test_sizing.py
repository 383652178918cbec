"""Destination sizing: exact products, no wraparound, clear rejections."""

from __future__ import annotations

import numpy as np
import pytest

from pngfront.pipeline import BufferTooSmall, CODES, ImageConfig, SinkBindFailure, required_dest_len, validate_dest_len
from pngfront.pipeline.sizing import buffer_length


def test_required_len_is_exact():
    assert required_dest_len(1, 1) == 4
    assert required_dest_len(3, 2) == 24
    assert required_dest_len(0, 100) == 0


def test_required_len_does_not_wrap_for_max_png_dimensions():
    side = 0x7FFFFFFF
    assert required_dest_len(side, side) == side * side * 4
    # A 32-bit product would wrap to a small number here
    assert required_dest_len(0x8000, 0x8000) == 1 << 32


def test_required_len_rejects_bad_dimensions():
    with pytest.raises(ValueError):
        required_dest_len(-1, 5)
    with pytest.raises(TypeError):
        required_dest_len(True, 5)


def test_validate_dest_len():
    cfg = ImageConfig(3, 2)
    assert validate_dest_len(cfg, 24) == 24
    assert validate_dest_len(cfg, 100) == 24
    with pytest.raises(BufferTooSmall) as exc:
        validate_dest_len(cfg, 23)
    assert exc.value.status == CODES.BUFFER_TOO_SMALL
    assert exc.value.required == 24
    assert exc.value.actual == 23
    assert exc.value.config == cfg


def test_buffer_length():
    assert buffer_length(bytearray(10)) == 10
    assert buffer_length(np.zeros((2, 3), dtype=np.uint32)) == 24
    assert buffer_length(bytearray(10), 4) == 4
    with pytest.raises(ValueError):
        buffer_length(bytearray(10), 11)
    with pytest.raises(SinkBindFailure):
        buffer_length([0, 0, 0, 0])
