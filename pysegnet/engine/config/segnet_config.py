"""SegNet binding configuration dataclasses.

Mirrors the keyword arguments of ``SegNet(...)`` plus the native backend
settings, and can be persisted to / loaded from YAML.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_type_hints

import yaml

from pysegnet.errors import ConfigurationError


# Default built-in network when neither a name nor argv is given.
DEFAULT_NETWORK = "aerial-fpv"

# float32 RGBA, the image layout the engine reads and renders into.
DEFAULT_PIXEL_BYTES = 16


# =============================================================================
# Component Configs
# =============================================================================

@dataclass
class NetworkConfig:
    """Which network to load.

    argv: command-line style tokens forwarded to the engine's own parser.
        A non-empty list takes precedence over ``network``.
    """
    network: str = DEFAULT_NETWORK
    argv: List[str] = field(default_factory=list)


@dataclass
class EngineConfig:
    """Native backend configuration.

    library_path: shared library exporting the ``segnet_*`` C ABI.  When
        None, ``$PYSEGNET_LIBRARY`` and then the system loader path are
        searched.
    pixel_bytes: bytes per pixel used to check known buffer sizes.
        Set to 0 to disable the size check.
    """
    library_path: Optional[str] = None
    pixel_bytes: int = DEFAULT_PIXEL_BYTES


# =============================================================================
# Main Config
# =============================================================================

@dataclass
class SegNetConfig:
    """Top-level SegNet configuration."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)


# =============================================================================
# YAML Loading / Saving
# =============================================================================

def _build_from_dict(cls, raw: Dict[str, Any]):
    """Recursively construct dataclass from a dict, skipping unknown keys."""
    if not isinstance(raw, dict):
        return cls()
    hints = get_type_hints(cls)
    kwargs = {}
    for name in cls.__dataclass_fields__:
        if name not in raw:
            continue
        val = raw[name]
        ft = hints.get(name)
        if hasattr(ft, "__dataclass_fields__") and isinstance(val, dict):
            val = _build_from_dict(ft, val)
        kwargs[name] = val
    return cls(**kwargs)


def load_segnet_config(path: Union[str, Path]) -> SegNetConfig:
    """Load SegNetConfig from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Malformed config file {path}: {exc}") from exc
    return _build_from_dict(SegNetConfig, data)


def save_segnet_config(config: SegNetConfig, path: Union[str, Path]) -> None:
    """Save SegNetConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
