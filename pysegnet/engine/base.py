"""Interfaces between the SegNet binding and a segmentation engine backend."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from pysegnet.engine.networks import NetworkType
from pysegnet.vision.buffers import ImageBuffer


class SegmentationEngine(Protocol):
    """A loaded engine instance (the native handle).

    Each method returns the engine's own success flag; the binding decides
    how failures surface.  ``process`` must run before ``overlay`` / ``mask``
    on the same frame.
    """

    def process(self, image: ImageBuffer, width: int, height: int) -> bool:
        """Classify every pixel and keep the class map inside the engine."""

    def overlay(self, image: ImageBuffer, width: int, height: int) -> bool:
        """Render class colors over ``image`` in place."""

    def mask(self, image: ImageBuffer, width: int, height: int) -> bool:
        """Render the raw class mask into ``image`` in place."""

    def close(self) -> None:
        """Release the engine."""


class EngineFactory(Protocol):
    """Creates engines.  ``None`` means native initialization failed."""

    def from_network(self, network: NetworkType) -> Optional[SegmentationEngine]:
        """Load a built-in network."""

    def from_argv(self, argv: Sequence[str]) -> Optional[SegmentationEngine]:
        """Load a network described by command-line style tokens."""
