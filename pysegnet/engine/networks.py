"""Built-in segmentation networks known to the native engine."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class NetworkType(Enum):
    """Built-in networks; values match the native enum ordering."""
    FCN_ALEXNET_PASCAL_VOC = 0
    FCN_ALEXNET_SYNTHIA_CVPR16 = 1
    FCN_ALEXNET_SYNTHIA_SUMMER_HD = 2
    FCN_ALEXNET_SYNTHIA_SUMMER_SD = 3
    FCN_ALEXNET_CITYSCAPES_HD = 4
    FCN_ALEXNET_CITYSCAPES_SD = 5
    FCN_ALEXNET_AERIAL_FPV_720p = 6
    SEGNET_CUSTOM = 7

    @classmethod
    def from_string(cls, name: str) -> "NetworkType":
        """Parse a network identifier (case-insensitive).

        Unknown identifiers map to ``SEGNET_CUSTOM``, which callers must
        treat as "not a built-in network".
        """
        if not isinstance(name, str):
            return cls.SEGNET_CUSTOM
        return _IDENTIFIERS.get(name.strip().lower(), cls.SEGNET_CUSTOM)

    @property
    def identifier(self) -> str:
        """Canonical identifier, e.g. ``fcn-alexnet-aerial-fpv``."""
        if self is NetworkType.SEGNET_CUSTOM:
            return "custom"
        return _NAMES[self][0]

    @property
    def is_builtin(self) -> bool:
        return self is not NetworkType.SEGNET_CUSTOM


# (canonical, short alias) per built-in network
_NAMES: Dict[NetworkType, Tuple[str, str]] = {
    NetworkType.FCN_ALEXNET_PASCAL_VOC: ("fcn-alexnet-pascal-voc", "pascal-voc"),
    NetworkType.FCN_ALEXNET_SYNTHIA_CVPR16: ("fcn-alexnet-synthia-cvpr", "synthia-cvpr"),
    NetworkType.FCN_ALEXNET_SYNTHIA_SUMMER_HD: ("fcn-alexnet-synthia-summer-hd", "synthia-summer-hd"),
    NetworkType.FCN_ALEXNET_SYNTHIA_SUMMER_SD: ("fcn-alexnet-synthia-summer-sd", "synthia-summer-sd"),
    NetworkType.FCN_ALEXNET_CITYSCAPES_HD: ("fcn-alexnet-cityscapes-hd", "cityscapes-hd"),
    NetworkType.FCN_ALEXNET_CITYSCAPES_SD: ("fcn-alexnet-cityscapes-sd", "cityscapes-sd"),
    NetworkType.FCN_ALEXNET_AERIAL_FPV_720p: ("fcn-alexnet-aerial-fpv", "aerial-fpv"),
}

_IDENTIFIERS: Dict[str, NetworkType] = {
    alias: net for net, aliases in _NAMES.items() for alias in aliases
}


def builtin_networks() -> Tuple[str, ...]:
    """All accepted built-in identifiers, canonical names first."""
    canonical = tuple(names[0] for names in _NAMES.values())
    short = tuple(names[1] for names in _NAMES.values())
    return canonical + short
