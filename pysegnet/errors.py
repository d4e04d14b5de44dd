"""Exception hierarchy for the segmentation bindings.

Every error raised by ``pysegnet`` derives from :class:`SegNetError`.  The
concrete classes also derive from the closest builtin so callers that only
catch ``ValueError`` / ``RuntimeError`` / ``MemoryError`` keep working.
"""

from __future__ import annotations


class SegNetError(Exception):
    """Base class for all segmentation binding errors."""


class ArgumentError(SegNetError, ValueError):
    """Malformed call arguments (dimensions, argv tokens, flags).

    Raised before any native call is attempted.
    """


class BufferResolutionError(ArgumentError):
    """An image object could not be resolved to a usable memory address."""


class ConstructionError(SegNetError, RuntimeError):
    """The native engine could not be created or its library loaded."""


class ConfigurationError(ConstructionError, ArgumentError):
    """Invalid engine configuration (unknown network, empty argv list)."""


class InvalidInstanceError(SegNetError, RuntimeError):
    """Operation on a SegNet without a live engine handle."""


class OperationError(SegNetError, RuntimeError):
    """The native process / overlay / mask call reported failure.

    The engine handle stays usable after this error.
    """


class AllocationError(SegNetError, MemoryError):
    """Transient native-side allocation failed."""
