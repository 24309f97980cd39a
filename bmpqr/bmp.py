# -*- coding: utf-8 -*-
"""
Lecteur BMP 24 bits non compressé -> buffer niveaux de gris (top-down).

- API :
    * decode(stream, honor_top_down=False) -> DecodedBitmap(width, height, gray)
    * decode_file(path, ...) -> DecodedBitmap
    * read_headers(stream) -> (BMPFileHeader, BMPInfoHeader)
- `gray` est un ndarray uint8 de forme (height, width), contigu, ligne 0 = haut
  de l'image. Aucun octet de padding n'y figure.
- Conversion BT.601 : Y = 0.299*R + 0.587*G + 0.114*B en double, tronquée.
"""
from __future__ import annotations
import io
import logging
import struct
from typing import BinaryIO, NamedTuple, Tuple

import numpy as np  # type: ignore

logger = logging.getLogger(__name__)

# Layout exact sur disque (little-endian, sans padding)
FILE_HEADER = struct.Struct("<2sIHHI")       # 14 octets
INFO_HEADER = struct.Struct("<IiiHHIIiiII")  # 40 octets
BMP_MAGIC = b"BM"
SUPPORTED_BIT_DEPTH = 24
BI_RGB = 0

# -----------------------------
# Errors
# -----------------------------

class BMPError(Exception):
    """Base error; `stage` names the step that failed (used by the CLI)."""
    stage = "decode"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        if stage:
            self.stage = stage


class FormatError(BMPError):
    """Not a BMP, or corrupt at the header level."""
    stage = "header read"


class UnsupportedFormat(BMPError):
    """Valid BMP using a feature this reader does not implement."""
    stage = "bit-depth check"


class InvalidDimensions(BMPError):
    stage = "dimensions"


class TruncatedData(BMPError):
    stage = "row read"


class AllocationFailure(BMPError, MemoryError):
    stage = "allocation"

# -----------------------------
# Types
# -----------------------------

class BMPFileHeader(NamedTuple):
    magic: bytes
    file_size: int
    reserved1: int
    reserved2: int
    pixel_data_offset: int


class BMPInfoHeader(NamedTuple):
    header_size: int
    width: int
    height: int
    planes: int
    bit_depth: int
    compression: int
    image_size: int
    x_resolution: int
    y_resolution: int
    colors_used: int
    colors_important: int

    @property
    def top_down(self) -> bool:
        return self.height < 0


class DecodedBitmap(NamedTuple):
    width: int
    height: int
    gray: np.ndarray

# -----------------------------
# Helpers
# -----------------------------

def row_stride(width: int) -> int:
    """Bytes per on-disk scanline: width*3 rounded up to a multiple of 4."""
    return ((width * 3) + 3) & ~3


def luminance(bgr: np.ndarray) -> np.ndarray:
    """BGR (..., 3) -> uint8 luma, computed in float64 then truncated."""
    px = np.asarray(bgr).astype(np.float64)
    b, g, r = px[..., 0], px[..., 1], px[..., 2]
    return (0.299 * r + 0.587 * g + 0.114 * b).astype(np.uint8)


def _read_exact(stream: BinaryIO, buf: bytearray) -> int:
    """Fill `buf` from the stream; returns the byte count actually read."""
    view = memoryview(buf)
    got = 0
    while got < len(buf):
        n = stream.readinto(view[got:])
        if not n:
            break
        got += n
    return got


def _allocate(what: str, factory, *args):
    try:
        return factory(*args)
    except (MemoryError, ValueError, OverflowError) as e:
        raise AllocationFailure(f"Could not allocate memory for {what}: {e}") from e

# -----------------------------
# Public API
# -----------------------------

def read_headers(stream: BinaryIO) -> Tuple[BMPFileHeader, BMPInfoHeader]:
    """Read and check the file header (magic) and the 40-byte info header."""
    raw = stream.read(FILE_HEADER.size)
    if len(raw) < FILE_HEADER.size:
        raise FormatError("Could not read BMP file header.", stage="header read")
    fh = BMPFileHeader(*FILE_HEADER.unpack(raw))
    if fh.magic != BMP_MAGIC:
        raise FormatError("Not a valid BMP file (magic number mismatch).", stage="magic check")

    raw = stream.read(INFO_HEADER.size)
    if len(raw) < INFO_HEADER.size:
        raise FormatError("Could not read BMP info header.", stage="header read")
    return fh, BMPInfoHeader(*INFO_HEADER.unpack(raw))


def decode(stream: BinaryIO, honor_top_down: bool = False) -> DecodedBitmap:
    """
    Decode a 24-bit uncompressed BMP into a top-down grayscale buffer.

    Rows are stored bottom-up on disk: on-disk row `y` lands in output row
    `height - 1 - y`. A negative height only contributes its absolute value
    unless `honor_top_down` is set, in which case rows keep their disk order.
    """
    fh, ih = read_headers(stream)

    if ih.bit_depth != SUPPORTED_BIT_DEPTH:
        raise UnsupportedFormat(
            f"Not a 24-bit BMP file. bitDepth: {ih.bit_depth}", stage="bit-depth check")
    if ih.compression != BI_RGB:
        raise UnsupportedFormat(
            f"Compressed BMP files are not supported (compression={ih.compression}).",
            stage="compression check")
    if ih.width <= 0:
        raise InvalidDimensions(f"Invalid BMP width: {ih.width}")

    width = ih.width
    height = abs(ih.height)
    flip = not (honor_top_down and ih.top_down)
    stride = row_stride(width)
    logger.debug("BMP %dx%d stride=%d offset=%d top_down=%s",
                 width, height, stride, fh.pixel_data_offset, ih.top_down)

    # geometry must fit in the stream before any buffer is sized from it
    end = stream.seek(0, io.SEEK_END)
    if height and fh.pixel_data_offset + stride * height > end:
        raise TruncatedData(
            f"Pixel data needs {stride * height} bytes at offset {fh.pixel_data_offset}, "
            f"file has {end} bytes.")
    stream.seek(fh.pixel_data_offset)

    gray = _allocate("image data", np.empty, (height, width), np.uint8)
    staging = _allocate("BGR row buffer", bytearray, stride if height else 0)

    for y in range(height):
        if _read_exact(stream, staging) != stride:
            raise TruncatedData(f"Could not read pixel data row {y} of {height}.")
        bgr = np.frombuffer(staging, dtype=np.uint8, count=width * 3).reshape(width, 3)
        gray[height - 1 - y if flip else y] = luminance(bgr)

    return DecodedBitmap(width, height, gray)


def decode_file(path, honor_top_down: bool = False) -> DecodedBitmap:
    """Open `path` in binary mode and decode it. OSError propagates on open failure."""
    with open(path, "rb") as f:
        return decode(f, honor_top_down=honor_top_down)
