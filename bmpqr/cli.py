#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
bmp-qr : lit un BMP 24 bits, le convertit en niveaux de gris et décode les QR codes.

Usage:
    bmp-qr <bmp_file> [--engine opencv|pyzbar] [--top-down] [--info]
"""
from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from bmpqr.bmp import BMPError, decode_file, read_headers
from bmpqr.config import load_settings, setup_logging
from bmpqr.qr import ENGINES, QRScanner

logger = logging.getLogger("bmp-qr")


def _build_parser(default_engine: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bmp-qr", description="Decode QR codes from a 24-bit uncompressed BMP file")
    parser.add_argument("bmp_file", help="Path to the BMP image")
    parser.add_argument("--engine", choices=ENGINES, default=default_engine,
                        help=f"QR recognition backend (default: {default_engine})")
    parser.add_argument("--top-down", action="store_true", default=None,
                        help="Keep disk row order for negative-height (top-down) BMPs")
    parser.add_argument("--info", action="store_true", help="Print the BMP header fields first")
    return parser


def _print_info(path: str) -> None:
    with open(path, "rb") as f:
        fh, ih = read_headers(f)
    for k, v in {**fh._asdict(), **ih._asdict()}.items():
        print(f"{k}: {v}")


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    setup_logging(settings)
    default_engine = settings.qr_engine
    if default_engine not in ENGINES:
        logger.warning("Unknown QR_ENGINE %r, using opencv", default_engine)
        default_engine = "opencv"
    args = _build_parser(default_engine).parse_args(argv)
    top_down = settings.honor_top_down if args.top_down is None else args.top_down

    try:
        if args.info:
            _print_info(args.bmp_file)
        bitmap = decode_file(args.bmp_file, honor_top_down=top_down)
    except OSError as e:
        print(f"Error [open]: Cannot open BMP file '{args.bmp_file}': {e.strerror or e}", file=sys.stderr)
        print(f"Failed to load BMP: {args.bmp_file}", file=sys.stderr)
        return 1
    except BMPError as e:
        print(f"Error [{e.stage}]: {e} ('{args.bmp_file}')", file=sys.stderr)
        print(f"Failed to load BMP: {args.bmp_file}", file=sys.stderr)
        return 1
    logger.info("Loaded BMP: %s, width: %d, height: %d", args.bmp_file, bitmap.width, bitmap.height)

    try:
        results = QRScanner(args.engine).scan(bitmap)
    except BMPError as e:
        print(f"Error [{e.stage}]: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("recognition failure", exc_info=True)
        print(f"Error during QR code recognition: {e}", file=sys.stderr)
        return 1

    if not results:
        print("No QR codes found in the image.")
        return 0
    print(f"Found {len(results)} QR code(s) in the image:")
    for r in results:
        if r.ok:
            print(f'  QR Code #{r.index + 1}: Payload: "{r.payload}"')
        else:
            print(f"  QR Code #{r.index + 1}: Decode failed: {r.error}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
