"""SegNet configuration.

Usage:
    from pysegnet.engine.config import load_segnet_config, SegNetConfig

    config = load_segnet_config("configs/segnet.yaml")
    print(config.network.network)
"""

from pysegnet.engine.config.segnet_config import (
    DEFAULT_NETWORK,
    DEFAULT_PIXEL_BYTES,
    EngineConfig,
    NetworkConfig,
    SegNetConfig,
    load_segnet_config,
    save_segnet_config,
)

__all__ = [
    "DEFAULT_NETWORK",
    "DEFAULT_PIXEL_BYTES",
    "EngineConfig",
    "NetworkConfig",
    "SegNetConfig",
    "load_segnet_config",
    "save_segnet_config",
]
