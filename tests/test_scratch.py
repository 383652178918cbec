"""Scratch acquisition: sized per request, zero is free, always released."""

from __future__ import annotations

import numpy as np
import pytest

from pngfront.pipeline import CODES, ResourceExhausted, acquire_scratch


class RecordingAllocator:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def __call__(self, length: int) -> np.ndarray:
        self.calls.append(length)
        if self.fail:
            raise MemoryError("simulated out of memory")
        return np.empty(length, dtype=np.uint8)


def test_exact_length_and_release():
    alloc = RecordingAllocator()
    with acquire_scratch(37, allocator=alloc) as scratch:
        assert scratch.array.nbytes == 37
        assert not scratch.released
    assert alloc.calls == [37]
    assert scratch.released
    with pytest.raises(RuntimeError):
        scratch.array


def test_zero_length_skips_allocator():
    alloc = RecordingAllocator(fail=True)
    with acquire_scratch(0, limit=0, allocator=alloc) as scratch:
        assert scratch.array.nbytes == 0
    assert alloc.calls == []
    assert scratch.released


def test_allocator_failure_is_resource_exhausted():
    with pytest.raises(ResourceExhausted) as exc:
        with acquire_scratch(64, allocator=RecordingAllocator(fail=True)):
            pass
    assert exc.value.status == CODES.SCRATCH_ALLOC_FAILED
    assert exc.value.resource == "scratch"


def test_limit_is_enforced_before_allocating():
    alloc = RecordingAllocator()
    with pytest.raises(ResourceExhausted):
        with acquire_scratch(65, limit=64, allocator=alloc):
            pass
    assert alloc.calls == []


def test_released_when_block_raises():
    with pytest.raises(KeyError):
        with acquire_scratch(8) as scratch:
            raise KeyError("boom")
    assert scratch.released
