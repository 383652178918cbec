from __future__ import annotations

import numpy as np
import pytest

from png_factory import encode, random_rgba


@pytest.fixture
def rgba_pixels() -> np.ndarray:
    return random_rgba(6, 5, seed=7)


@pytest.fixture
def rgba_png(rgba_pixels: np.ndarray) -> bytes:
    # Cycle through all five filter types
    return encode(rgba_pixels, filters=(0, 1, 2, 3, 4))


@pytest.fixture
def solid_pixel_png() -> bytes:
    return encode(np.array([[[12, 34, 56, 78]]], dtype=np.uint8))
