"""pysegnet: Python bindings for a native image segmentation engine."""

from pysegnet.engine.config import SegNetConfig, load_segnet_config, save_segnet_config
from pysegnet.engine.networks import NetworkType, builtin_networks
from pysegnet.errors import (
    AllocationError,
    ArgumentError,
    BufferResolutionError,
    ConfigurationError,
    ConstructionError,
    InvalidInstanceError,
    OperationError,
    SegNetError,
)
from pysegnet.vision.buffers import ImageBuffer, MemoryLocation, resolve_buffer
from pysegnet.vision.segnet_wrapper import SegNet, Segmentation

__version__ = "0.1.0"

__all__ = [
    "SegNet",
    "Segmentation",
    "SegNetConfig",
    "load_segnet_config",
    "save_segnet_config",
    "NetworkType",
    "builtin_networks",
    "ImageBuffer",
    "MemoryLocation",
    "resolve_buffer",
    # Errors
    "SegNetError",
    "ArgumentError",
    "BufferResolutionError",
    "ConstructionError",
    "ConfigurationError",
    "InvalidInstanceError",
    "OperationError",
    "AllocationError",
]
