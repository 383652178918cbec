#!/usr/bin/env python3
"""Command line front-end.

Usage:
    pngfront probe image.png
    pngfront decode image.png -o image.rgba [--config decode.yaml] [--engine pillow]

The process exit code is the decode status code (0 on success).
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ENGINE_NAMES, DecodeOptions, load_options
from .pipeline import CODES, decode_into, probe_dimensions, required_dest_len

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pngfront", description="Bounded PNG to RGBA8 decoder")
    parser.add_argument("--config", default=None, help="YAML file with decode options")
    parser.add_argument("--engine", default=None, choices=ENGINE_NAMES, help="Decode engine")
    parser.add_argument("--verify-checksum", action="store_true", help="Reject CRC/Adler-32 mismatches")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    probe = sub.add_parser("probe", help="Print width and height")
    probe.add_argument("input", help="PNG file")

    decode = sub.add_parser("decode", help="Decode to raw RGBA8 bytes")
    decode.add_argument("input", help="PNG file")
    decode.add_argument("-o", "--output", required=True, help="Output file for raw pixels")
    return parser


def _options_from_args(args: argparse.Namespace) -> DecodeOptions:
    options = load_options(args.config)
    overrides = {}
    if args.engine is not None:
        overrides["engine"] = args.engine
    if args.verify_checksum:
        overrides["ignore_checksum"] = False
    return dataclasses.replace(options, **overrides) if overrides else options


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    options = _options_from_args(args)
    data = Path(args.input).read_bytes()

    result = probe_dimensions(data, options=options)
    if not result.ok:
        logger.error("Probe failed for %s: status %d", args.input, result.status)
        return result.status

    if args.command == "probe":
        print(f"{result.width} {result.height}")
        return CODES.OK

    dest = bytearray(required_dest_len(result.width, result.height))
    result = decode_into(data, dest, options=options)
    if not result.ok:
        logger.error("Decode failed for %s: status %d", args.input, result.status)
        return result.status

    Path(args.output).write_bytes(dest)
    logger.info("Wrote %dx%d RGBA8 (%d bytes) to %s", result.width, result.height, len(dest), args.output)
    return CODES.OK


if __name__ == "__main__":
    sys.exit(main())
