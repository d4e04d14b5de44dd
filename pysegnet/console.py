"""Segment an image file from the command line.

Usage:
    pysegnet-console input.jpg output.jpg --network cityscapes-sd
    pysegnet-console input.jpg mask.png --mask
    pysegnet-console input.jpg output.jpg -- --prototxt=net.prototxt --model=net.caffemodel

Tokens after ``--`` are handed to the engine as argv and take precedence
over ``--network``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from pysegnet.engine.base import EngineFactory
from pysegnet.engine.config.segnet_config import SegNetConfig, load_segnet_config
from pysegnet.engine.networks import builtin_networks
from pysegnet.errors import SegNetError
from pysegnet.vision.segnet_wrapper import SegNet

logger = logging.getLogger(__name__)


def _split_engine_argv(args: Sequence[str]) -> Tuple[List[str], Optional[List[str]]]:
    args = list(args)
    if "--" not in args:
        return args, None
    idx = args.index("--")
    return args[:idx], args[idx + 1:]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pysegnet-console",
        description="Segment an image using a native segNet engine.",
        epilog="built-in networks: " + ", ".join(builtin_networks()),
    )
    parser.add_argument("input", type=Path, help="image to segment")
    parser.add_argument("output", type=Path, help="where to write the rendered result")
    parser.add_argument("--network", default=None, help="built-in network name")
    parser.add_argument("--config", type=Path, default=None, help="YAML SegNetConfig")
    parser.add_argument("--library", default=None, help="path to the engine shared library")
    parser.add_argument("--mask", action="store_true", help="render the class mask instead of the overlay")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser


def load_rgba(path: Path) -> np.ndarray:
    """Read an image file into the engine's float32 RGBA layout."""
    bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if bgr is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    rgba = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)
    return np.ascontiguousarray(rgba, dtype=np.float32)


def save_rgba(image: np.ndarray, path: Path) -> None:
    """Write a float32 RGBA image back to disk."""
    rgba = np.clip(image, 0.0, 255.0).astype(np.uint8)
    bgr = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), bgr):
        raise OSError(f"Could not write image: {path}")


def run(
    input_path: Path,
    output_path: Path,
    config: SegNetConfig,
    network: Optional[str] = None,
    engine_argv: Optional[List[str]] = None,
    mask: bool = False,
    factory: Optional[EngineFactory] = None,
) -> None:
    image = load_rgba(input_path)
    height, width = image.shape[:2]
    logger.info("Loaded %s (%dx%d)", input_path, width, height)

    with SegNet(network, engine_argv, config=config, factory=factory) as net:
        net.process(image, width, height)
        net.overlay(image, width, height, mask=mask)

    save_rgba(image, output_path)
    logger.info("Wrote %s to %s", "mask" if mask else "overlay", output_path)


def main(argv: Optional[Sequence[str]] = None, factory: Optional[EngineFactory] = None) -> int:
    args, engine_argv = _split_engine_argv(sys.argv[1:] if argv is None else argv)
    opts = build_parser().parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if opts.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_segnet_config(opts.config) if opts.config else SegNetConfig()
        if opts.library:
            config.engine.library_path = opts.library
        if opts.verbose:
            config.verbose = True

        run(
            opts.input,
            opts.output,
            config,
            network=opts.network,
            engine_argv=engine_argv,
            mask=opts.mask,
            factory=factory,
        )
    except (SegNetError, OSError) as e:
        logger.error("segmentation failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
