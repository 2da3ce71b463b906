#!/usr/bin/env python3
"""
pixeltree - Main Application Entry Point

Parses the command line (optionally layered over a TOML config file),
configures logging and runs PixelTreeApp until interrupted.

Exit codes: 0 on interrupt or run-once completion, 1 on missing/invalid
configuration or any fatal setup error.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .app import PixelTreeApp
from .config import DEFAULT_DST_NET, DEFAULT_RATE, PixelTreeConfig, load_from_toml
from .encoding import DEFAULT_MAX_HEIGHT, DEFAULT_MAX_WIDTH, ENCODINGS
from .errors import ConfigError, PixelTreeError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("pixeltree")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixeltree", description="Ping an image onto an IPv6 pixel tree"
    )
    parser.add_argument("--config", help="Path to a TOML configuration file")
    parser.add_argument(
        "--dst-net",
        help=f"the destination network of the ipv6 tree (default {DEFAULT_DST_NET})",
    )
    parser.add_argument("--image", help="the image to ping to the tree")
    parser.add_argument("-x", type=int, help="the x offset to draw the image")
    parser.add_argument("-y", type=int, help="the y offset to draw the image")
    parser.add_argument(
        "--rate",
        type=float,
        help=f"how many times to draw the image per second (default {DEFAULT_RATE:g})",
    )
    parser.add_argument("--workers", type=int, help="the number of workers to use")
    parser.add_argument(
        "--once", action="store_true", default=None, help="abort after 1 loop"
    )
    parser.add_argument(
        "--encoding",
        choices=sorted(ENCODINGS),
        help="address layout of the tree (default byte-offset)",
    )
    parser.add_argument(
        "--max-width",
        type=int,
        help=f"display width for text-segment addressing (default {DEFAULT_MAX_WIDTH})",
    )
    parser.add_argument(
        "--max-height",
        type=int,
        help=f"display height for text-segment addressing (default {DEFAULT_MAX_HEIGHT})",
    )
    parser.add_argument("--seed", type=int, help="seed for the pixel draw order")

    backend = parser.add_mutually_exclusive_group()
    backend.add_argument(
        "--backend", help="transmission backend: icmp, mock or an installed plugin"
    )
    backend.add_argument(
        "--pcap", action="store_const", const="pcap", dest="backend",
        help="Use PCAP for sending",
    )
    backend.add_argument(
        "--pfring", action="store_const", const="pfring", dest="backend",
        help="Use PF_RING for sending",
    )
    parser.add_argument(
        "--interface", help="Use interface for outgoing traffic for pcap/pfring"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="logging verbosity (default INFO)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> PixelTreeConfig:
    """
    Build the configuration: defaults, then the TOML file, then flags.

    Raises:
        ConfigError: If the file or any value is invalid
    """
    base = load_from_toml(args.config) if args.config else PixelTreeConfig()
    return base.with_overrides(
        image=Path(args.image) if args.image else None,
        dst_net=args.dst_net,
        x=args.x,
        y=args.y,
        rate=args.rate,
        workers=args.workers,
        once=args.once,
        encoding=args.encoding,
        max_width=args.max_width,
        max_height=args.max_height,
        backend=args.backend,
        interface=args.interface,
        seed=args.seed,
        log_level=args.log_level,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=args.log_level or logging.INFO, format=LOG_FORMAT)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    if config.image is None:
        print("the image flag must be provided", file=sys.stderr)
        return 1

    logging.getLogger().setLevel(config.log_level.upper())

    app = PixelTreeApp(config)
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except PixelTreeError as e:
        logger.critical(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
