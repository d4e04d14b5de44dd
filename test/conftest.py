"""Shared fakes and factories for pysegnet tests."""

from __future__ import annotations

import ctypes
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from pysegnet.engine.networks import NetworkType
from pysegnet.vision.buffers import ImageBuffer


# ---------------------------------------------------------------------------
# Fake engine backend
# ---------------------------------------------------------------------------

class FakeEngine:
    """In-process stand-in for a native engine handle.

    Records every call.  When ``paint_value`` is set, overlay / mask write
    that value into every float of the borrowed buffer, through its address.
    """

    def __init__(self, paint_value: Optional[float] = None) -> None:
        self.calls: List[Tuple[str, ImageBuffer, int, int]] = []
        self.results: Dict[str, bool] = {"process": True, "overlay": True, "mask": True}
        self.paint_value = paint_value
        self.close_count = 0

    def _call(self, op: str, image: ImageBuffer, width: int, height: int) -> bool:
        self.calls.append((op, image, width, height))
        return self.results[op]

    def process(self, image, width, height):
        return self._call("process", image, width, height)

    def overlay(self, image, width, height):
        self._paint(image)
        return self._call("overlay", image, width, height)

    def mask(self, image, width, height):
        self._paint(image)
        return self._call("mask", image, width, height)

    def close(self):
        self.close_count += 1

    @property
    def ops(self) -> List[str]:
        return [c[0] for c in self.calls]

    def _paint(self, image: ImageBuffer) -> None:
        if self.paint_value is None or not image.size_known:
            return
        count = image.nbytes // ctypes.sizeof(ctypes.c_float)
        view = np.ctypeslib.as_array((ctypes.c_float * count).from_address(image.ptr))
        view[:] = self.paint_value


class FakeEngineFactory:
    """EngineFactory returning one FakeEngine, or None to simulate failure."""

    def __init__(self, fail: bool = False, paint_value: Optional[float] = None) -> None:
        self.fail = fail
        self.engine = FakeEngine(paint_value=paint_value)
        self.network_calls: List[NetworkType] = []
        self.argv_calls: List[List[str]] = []

    def from_network(self, network: NetworkType):
        self.network_calls.append(network)
        return None if self.fail else self.engine

    def from_argv(self, argv: Sequence[str]):
        self.argv_calls.append(list(argv))
        return None if self.fail else self.engine


# ---------------------------------------------------------------------------
# Synthetic data factories
# ---------------------------------------------------------------------------

def make_rgba(h: int = 300, w: int = 300, value: float = 0.0) -> np.ndarray:
    """float32 RGBA image in the engine's layout."""
    return np.full((h, w, 4), value, dtype=np.float32)


@pytest.fixture
def factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def image() -> np.ndarray:
    return make_rgba()
