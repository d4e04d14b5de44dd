"""SegNet: Python object around a native image segmentation engine.

Construction loads a network (built-in name or argv tokens), ``process``
classifies a frame, and ``overlay`` / ``mask`` render the last class map
into a caller-owned image in place.

Example::

    net = SegNet("cityscapes-sd")
    net.process(img, width, height)
    net.overlay(img, width, height)           # colors over the input
    net.overlay(img, width, height, mask=True)  # raw class mask

Calls are blocking.  A single SegNet must not be used from several threads
at once.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import replace
from typing import Any, List, Optional, Sequence

from pysegnet.engine.base import EngineFactory, SegmentationEngine
from pysegnet.engine.config.segnet_config import NetworkConfig, SegNetConfig
from pysegnet.engine.native_engine import NativeEngineFactory
from pysegnet.engine.networks import NetworkType, builtin_networks
from pysegnet.errors import (
    ArgumentError,
    ConfigurationError,
    ConstructionError,
    InvalidInstanceError,
    OperationError,
)
from pysegnet.vision.buffers import ImageBuffer, resolve_buffer

logger = logging.getLogger(__name__)

# Dimensions cross into the engine as C ints.
MAX_DIMENSION = 2**31 - 1


class Segmentation:
    """Image segmentation result record.

    image_bytes: size in bytes of the image the result belongs to.
    """

    __slots__ = ("_image_bytes",)

    def __init__(self, image_bytes: int = 0) -> None:
        self.image_bytes = image_bytes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Segmentation):
            return NotImplemented
        return self._image_bytes == other._image_bytes

    def __repr__(self) -> str:
        return f"Segmentation(image_bytes={self._image_bytes})"

    @property
    def image_bytes(self) -> int:
        return self._image_bytes

    @image_bytes.setter
    def image_bytes(self, value: int) -> None:
        if isinstance(value, bool):
            raise TypeError("image_bytes must be an integer")
        try:
            value = operator.index(value)
        except TypeError:
            raise TypeError(
                f"image_bytes must be an integer, got {type(value).__name__}"
            ) from None
        if value < 0:
            raise ValueError(f"image_bytes must be >= 0, got {value}")
        self._image_bytes = value

    @image_bytes.deleter
    def image_bytes(self) -> None:
        raise TypeError("Not permitted to delete Segmentation.image_bytes")

    # Attribute name used by the jetson-inference object model.
    ImageBytes = image_bytes


class SegNet:
    """Image segmentation DNN: segments objects in an image.

    Args:
        network: Name of a built-in network, see :func:`builtin_networks`.
        argv: Command-line style tokens for the engine.  A non-empty list
            takes precedence over ``network``; an empty list is rejected.
        config: Full configuration.  Explicit ``network`` / ``argv``
            arguments override its ``network`` section.
        factory: Engine backend.  Defaults to the native ctypes backend.

    Raises:
        ArgumentError: ``argv`` is not a list of strings.
        ConfigurationError: Unknown network or empty ``argv``.
        ConstructionError: The engine failed to initialize.
    """

    Segmentation = Segmentation

    # Class-level default so half-constructed instances fail cleanly.
    _engine: Optional[SegmentationEngine] = None
    network_type: NetworkType = NetworkType.SEGNET_CUSTOM
    _last_result: Optional[Segmentation] = None

    def __init__(
        self,
        network: Optional[str] = None,
        argv: Optional[Sequence[str]] = None,
        *,
        config: Optional[SegNetConfig] = None,
        factory: Optional[EngineFactory] = None,
    ) -> None:
        config = config or SegNetConfig()
        if network is not None and not isinstance(network, str):
            raise ArgumentError(
                f"segNet network must be a string, got {type(network).__name__}"
            )

        net_cfg = config.network
        if network is not None:
            net_cfg = replace(net_cfg, network=network)
        if argv is not None:
            net_cfg = replace(net_cfg, argv=_parse_argv(argv))

        self.config = replace(config, network=net_cfg)
        self.pixel_bytes = _check_pixel_bytes(config.engine.pixel_bytes)
        self._last_result = None
        self._log_level = logging.INFO if config.verbose else logging.DEBUG

        factory = factory or NativeEngineFactory(config.engine)
        self._engine = self._create(factory, net_cfg, argv_given=argv is not None)

    def _create(
        self,
        factory: EngineFactory,
        net_cfg: NetworkConfig,
        argv_given: bool,
    ) -> SegmentationEngine:
        tokens = _parse_argv(net_cfg.argv)

        if tokens:
            logger.info("segNet loading network using argv command line params")
            for n, token in enumerate(tokens):
                logger.log(self._log_level, "segNet argv[%d] = '%s'", n, token)
            engine = factory.from_argv(tokens)
            source = "argv " + " ".join(tokens)
        elif argv_given:
            raise ConfigurationError("segNet argv list was empty")
        else:
            network_type = NetworkType.from_string(net_cfg.network)
            if not network_type.is_builtin:
                logger.error("segNet invalid built-in network was requested ('%s')", net_cfg.network)
                raise ConfigurationError(
                    f"invalid built-in network '{net_cfg.network}' was requested; "
                    f"choose one of: {', '.join(builtin_networks())}"
                )
            logger.info("segNet loading built-in network '%s'", net_cfg.network)
            engine = factory.from_network(network_type)
            self.network_type = network_type
            source = f"built-in network '{net_cfg.network}'"

        if engine is None:
            logger.error("segNet failed to load %s", source)
            raise ConstructionError(f"segNet failed to load {source}")
        return engine

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def process(self, image: Any, width: int, height: int) -> bool:
        """Run segmentation on an image.

        The class map stays inside the engine; call :meth:`overlay` or
        :meth:`mask` afterwards to render it.

        Args:
            image: Buffer reference, see :func:`resolve_buffer`.
            width: Image width in pixels (> 0).
            height: Image height in pixels (> 0).

        Returns:
            True on success.

        Raises:
            InvalidInstanceError, ArgumentError, BufferResolutionError,
            OperationError.
        """
        engine = self._require_engine()
        width, height = _check_dims("Process", width, height)
        buf = self._resolve(image, width, height, writable=False)

        logger.log(self._log_level, "segNet.Process() %dx%d", width, height)
        if not engine.process(buf, width, height):
            raise OperationError("segNet.Process() encountered an error classifying the image")

        self._last_result = Segmentation(image_bytes=width * height * self.pixel_bytes)
        return True

    def overlay(self, image: Any, width: int, height: int, mask: Any = False) -> bool:
        """Render the last segmentation into ``image`` in place.

        Args:
            image: Writable buffer reference, see :func:`resolve_buffer`.
            width: Image width in pixels (> 0).
            height: Image height in pixels (> 0).
            mask: Truthy renders the raw class mask, falsy the color overlay.

        Returns:
            True on success.
        """
        engine = self._require_engine()
        op = "Mask" if mask else "Overlay"
        width, height = _check_dims(op, width, height)
        buf = self._resolve(image, width, height, writable=True)

        logger.log(self._log_level, "segNet.%s() %dx%d", op, width, height)
        render = engine.mask if mask else engine.overlay
        if not render(buf, width, height):
            raise OperationError(f"segNet.{op}() encountered an error rendering the image")
        return True

    def mask(self, image: Any, width: int, height: int) -> bool:
        """Shorthand for ``overlay(image, width, height, mask=True)``."""
        return self.overlay(image, width, height, mask=True)

    # jetson-inference method names
    Process = process
    Overlay = overlay
    Mask = mask

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def last_result(self) -> Optional[Segmentation]:
        """Record for the last successfully processed frame, if any."""
        return self._last_result

    @property
    def closed(self) -> bool:
        return self._engine is None

    def close(self) -> None:
        """Release the engine.  Safe to call more than once."""
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.close()
            logger.info("segNet engine released")

    def __enter__(self) -> "SegNet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "ready"
        return f"SegNet(network={self.network_type.identifier!r}, {state})"

    def _require_engine(self) -> SegmentationEngine:
        if self._engine is None:
            raise InvalidInstanceError("segNet invalid object instance")
        return self._engine

    def _resolve(self, image: Any, width: int, height: int, writable: bool) -> ImageBuffer:
        return resolve_buffer(
            image,
            writable=writable,
            min_bytes=width * height * self.pixel_bytes,
        )


def _parse_argv(argv: Optional[Sequence[str]]) -> List[str]:
    if argv is None:
        return []
    if isinstance(argv, (str, bytes)):
        raise ArgumentError("segNet argv must be a list of strings, not a single string")
    try:
        tokens = list(argv)
    except TypeError:
        raise ArgumentError(
            f"segNet argv must be a list of strings, got {type(argv).__name__}"
        ) from None
    for n, token in enumerate(tokens):
        if not isinstance(token, str):
            raise ArgumentError(
                f"failed to parse argv list: argv[{n}] is {type(token).__name__}, expected str"
            )
    return tokens


def _check_dims(op: str, width: Any, height: Any):
    dims = []
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool):
            raise ArgumentError(f"segNet.{op}() {name} must be an integer")
        try:
            value = operator.index(value)
        except TypeError:
            raise ArgumentError(
                f"segNet.{op}() {name} must be an integer, got {type(value).__name__}"
            ) from None
        dims.append(value)
    if not all(0 < d <= MAX_DIMENSION for d in dims):
        raise ArgumentError(
            f"segNet.{op}() image dimensions are invalid ({dims[0]}x{dims[1]})"
        )
    return dims[0], dims[1]


def _check_pixel_bytes(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError("engine.pixel_bytes must be an integer")
    try:
        value = operator.index(value)
    except TypeError:
        raise ConfigurationError(
            f"engine.pixel_bytes must be an integer, got {type(value).__name__}"
        ) from None
    return max(0, value)
