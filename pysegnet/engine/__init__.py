"""Engine backends and configuration for SegNet."""

from pysegnet.engine.base import EngineFactory, SegmentationEngine
from pysegnet.engine.native_engine import NativeEngine, NativeEngineFactory
from pysegnet.engine.networks import NetworkType, builtin_networks

__all__ = [
    "EngineFactory",
    "SegmentationEngine",
    "NativeEngine",
    "NativeEngineFactory",
    "NetworkType",
    "builtin_networks",
]
