"""ctypes backend for the native segmentation engine.

The engine library exports a small C ABI::

    void* segnet_create(int network_type);
    void* segnet_create_argv(int argc, char** argv);
    bool  segnet_process(void* net, float* image, uint32_t width, uint32_t height);
    bool  segnet_overlay(void* net, float* image, uint32_t width, uint32_t height);
    bool  segnet_mask(void* net, float* image, uint32_t width, uint32_t height);
    void  segnet_destroy(void* net);

Model loading, CUDA processing and rendering all happen inside the library.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import functools
import logging
import os
from typing import Optional, Sequence

from pysegnet.engine.config.segnet_config import EngineConfig
from pysegnet.engine.networks import NetworkType
from pysegnet.errors import AllocationError, ConstructionError
from pysegnet.vision.buffers import ImageBuffer

logger = logging.getLogger(__name__)

LIBRARY_ENV_VAR = "PYSEGNET_LIBRARY"
LIBRARY_NAME = "segnet"

_IMAGE_ARGS = [ctypes.c_void_p, ctypes.c_void_p, ctypes.c_uint32, ctypes.c_uint32]


def find_library(library_path: Optional[str] = None) -> str:
    """Locate the engine library: explicit path, env var, then loader path."""
    for candidate in (library_path, os.environ.get(LIBRARY_ENV_VAR)):
        if candidate:
            return candidate
    found = ctypes.util.find_library(LIBRARY_NAME)
    if not found:
        raise ConstructionError(
            f"segNet engine library not found. Set engine.library_path or "
            f"${LIBRARY_ENV_VAR} to the lib{LIBRARY_NAME} shared library."
        )
    return found


@functools.lru_cache(maxsize=None)
def load_library(path: str) -> ctypes.CDLL:
    """Load the engine library and register its signatures.

    Cached per path, so registration runs once per process.
    """
    try:
        lib = ctypes.CDLL(path)
    except OSError as exc:
        raise ConstructionError(f"failed to load segNet engine library '{path}': {exc}") from exc

    try:
        lib.segnet_create.argtypes = [ctypes.c_int]
        lib.segnet_create.restype = ctypes.c_void_p
        lib.segnet_create_argv.argtypes = [ctypes.c_int, ctypes.POINTER(ctypes.c_char_p)]
        lib.segnet_create_argv.restype = ctypes.c_void_p
        for name in ("segnet_process", "segnet_overlay", "segnet_mask"):
            fn = getattr(lib, name)
            fn.argtypes = _IMAGE_ARGS
            fn.restype = ctypes.c_bool
        lib.segnet_destroy.argtypes = [ctypes.c_void_p]
        lib.segnet_destroy.restype = None
    except AttributeError as exc:
        raise ConstructionError(
            f"'{path}' does not export the segnet_* C ABI: {exc}"
        ) from exc

    logger.info("Loaded segNet engine library from %s", path)
    return lib


class NativeEngine:
    """One native segNet instance behind an opaque handle."""

    def __init__(self, lib: ctypes.CDLL, handle: int) -> None:
        self._lib = lib
        self._handle: Optional[int] = handle

    @property
    def handle(self) -> Optional[int]:
        return self._handle

    def process(self, image: ImageBuffer, width: int, height: int) -> bool:
        return bool(self._lib.segnet_process(self._handle, image.as_voidp(), width, height))

    def overlay(self, image: ImageBuffer, width: int, height: int) -> bool:
        return bool(self._lib.segnet_overlay(self._handle, image.as_voidp(), width, height))

    def mask(self, image: ImageBuffer, width: int, height: int) -> bool:
        return bool(self._lib.segnet_mask(self._handle, image.as_voidp(), width, height))

    def close(self) -> None:
        if self._handle is None:
            return
        self._lib.segnet_destroy(self._handle)
        self._handle = None


class NativeEngineFactory:
    """Creates :class:`NativeEngine` instances from the shared library.

    The library is loaded lazily on the first create call.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        config = config or EngineConfig()
        self.library_path = config.library_path
        self._lib: Optional[ctypes.CDLL] = None

    def load(self) -> ctypes.CDLL:
        if self._lib is None:
            self._lib = load_library(find_library(self.library_path))
        return self._lib

    def from_network(self, network: NetworkType) -> Optional[NativeEngine]:
        lib = self.load()
        handle = lib.segnet_create(network.value)
        if not handle:
            return None
        return NativeEngine(lib, handle)

    def from_argv(self, argv: Sequence[str]) -> Optional[NativeEngine]:
        lib = self.load()
        encoded = [token.encode("utf-8") for token in argv]
        try:
            c_argv = (ctypes.c_char_p * len(encoded))(*encoded)
        except MemoryError as exc:
            raise AllocationError("failed to allocate memory for argv list") from exc

        handle = lib.segnet_create_argv(len(encoded), c_argv)
        if not handle:
            return None
        return NativeEngine(lib, handle)
