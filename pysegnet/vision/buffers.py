"""Borrowed image buffer references.

The engine reads and writes image memory in place through raw pointers.  This
module turns the objects callers actually hold (NumPy arrays, PyTorch
tensors, CUDA array-interface objects, legacy mapped-memory capsules, raw
integer addresses) into an :class:`ImageBuffer` without copying anything.

The memory stays owned by the caller: an ``ImageBuffer`` is only meaningful
while the source object is alive, and nothing here retains or frees it.
"""

from __future__ import annotations

import ctypes
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from pysegnet.errors import BufferResolutionError

logger = logging.getLogger(__name__)


class MemoryLocation(Enum):
    """Where a buffer's memory lives."""
    HOST = "host"
    DEVICE = "device"
    MAPPED = "mapped"    # zero-copy host memory mapped into the device
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ImageBuffer:
    """Caller-owned memory handle passed to the engine.

    ptr: address of the first byte.
    nbytes: size of the region, 0 when unknown.
    location: host / device / mapped tag.
    readonly: whether the source object forbids writes.
    """
    ptr: int
    nbytes: int = 0
    location: MemoryLocation = MemoryLocation.UNKNOWN
    readonly: bool = False

    @property
    def size_known(self) -> bool:
        return self.nbytes > 0

    def as_voidp(self) -> ctypes.c_void_p:
        return ctypes.c_void_p(self.ptr)


def resolve_buffer(
    image: Any,
    *,
    writable: bool = False,
    min_bytes: int = 0,
) -> ImageBuffer:
    """Resolve ``image`` to a borrowed :class:`ImageBuffer`.

    Args:
        image: ImageBuffer, int address, NumPy array, tensor with
            ``data_ptr()``, object exposing ``__cuda_array_interface__`` or
            a mapped-memory PyCapsule.
        writable: Reject sources that are known to be read-only.
        min_bytes: Reject sources whose known size is smaller than this.

    Raises:
        BufferResolutionError: If no usable address can be obtained.
    """
    buf = _resolve(image)

    if not buf.ptr:
        raise BufferResolutionError("image buffer resolves to a NULL pointer")
    if writable and buf.readonly:
        raise BufferResolutionError(
            "image buffer is read-only but the operation renders into it"
        )
    if min_bytes > 0 and buf.size_known and buf.nbytes < min_bytes:
        raise BufferResolutionError(
            f"image buffer holds {buf.nbytes} bytes, "
            f"at least {min_bytes} required for the given dimensions"
        )

    logger.debug(
        "Resolved %s to %s buffer at 0x%x (%d bytes)",
        type(image).__name__, buf.location.value, buf.ptr, buf.nbytes,
    )
    return buf


def _resolve(image: Any) -> ImageBuffer:
    if isinstance(image, ImageBuffer):
        return image

    if isinstance(image, bool):
        raise BufferResolutionError("a bool is not an image buffer")

    if isinstance(image, int):
        if image < 0:
            raise BufferResolutionError(f"invalid image address {image}")
        return ImageBuffer(ptr=image)

    if callable(getattr(image, "data_ptr", None)):
        return _from_tensor(image)

    if hasattr(image, "__cuda_array_interface__"):
        return _from_cuda_interface(image.__cuda_array_interface__)

    if isinstance(image, np.ndarray) or hasattr(image, "__array_interface__"):
        return _from_ndarray(np.asarray(image))

    if type(image).__name__ == "PyCapsule":
        return ImageBuffer(ptr=_capsule_pointer(image), location=MemoryLocation.MAPPED)

    raise BufferResolutionError(
        f"cannot get an image pointer from object of type {type(image).__name__}"
    )


def _from_ndarray(arr: np.ndarray) -> ImageBuffer:
    if not arr.flags.c_contiguous:
        raise BufferResolutionError("NumPy image must be C-contiguous")
    if arr.dtype != np.float32:
        logger.warning("NumPy image has dtype %s, the engine reads float32", arr.dtype)
    return ImageBuffer(
        ptr=int(arr.ctypes.data),
        nbytes=int(arr.nbytes),
        location=MemoryLocation.HOST,
        readonly=not arr.flags.writeable,
    )


def _from_tensor(tensor: Any) -> ImageBuffer:
    if not tensor.is_contiguous():
        raise BufferResolutionError("tensor image must be contiguous")
    location = MemoryLocation.DEVICE if getattr(tensor, "is_cuda", False) else MemoryLocation.HOST
    return ImageBuffer(
        ptr=int(tensor.data_ptr()),
        nbytes=int(tensor.element_size() * tensor.numel()),
        location=location,
    )


def _from_cuda_interface(iface: dict) -> ImageBuffer:
    try:
        ptr, readonly = iface["data"]
        shape = tuple(iface["shape"])
        itemsize = np.dtype(iface["typestr"]).itemsize
    except (KeyError, TypeError, ValueError) as exc:
        raise BufferResolutionError(
            f"malformed __cuda_array_interface__: {exc}"
        ) from exc

    strides = iface.get("strides")
    if strides is not None and tuple(strides) != _c_strides(shape, itemsize):
        raise BufferResolutionError("CUDA image must be C-contiguous")

    return ImageBuffer(
        ptr=int(ptr or 0),
        nbytes=int(np.prod(shape, dtype=np.int64)) * itemsize,
        location=MemoryLocation.DEVICE,
        readonly=bool(readonly),
    )


def _c_strides(shape: Sequence[int], itemsize: int) -> Tuple[int, ...]:
    strides = []
    step = itemsize
    for dim in reversed(shape):
        strides.append(step)
        step *= dim
    return tuple(reversed(strides))


@functools.lru_cache(maxsize=None)
def _capsule_api() -> Tuple[Any, Any]:
    """Register the PyCapsule C API signatures once per process."""
    api = ctypes.pythonapi
    get_name = api.PyCapsule_GetName
    get_name.restype = ctypes.c_char_p
    get_name.argtypes = [ctypes.py_object]
    get_pointer = api.PyCapsule_GetPointer
    get_pointer.restype = ctypes.c_void_p
    get_pointer.argtypes = [ctypes.py_object, ctypes.c_char_p]
    return get_name, get_pointer


def _capsule_pointer(capsule: Any) -> int:
    get_name, get_pointer = _capsule_api()
    try:
        name: Optional[bytes] = get_name(capsule)
        ptr = get_pointer(capsule, name)
    except ValueError as exc:
        raise BufferResolutionError(
            f"failed to get image pointer from PyCapsule container: {exc}"
        ) from exc
    return int(ptr or 0)
