import struct
from pathlib import Path

import cv2
import numpy as np
import pytest
from PIL import Image


def build_bmp(disk_rows, height=None, bit_depth=24, compression=0,
              magic=b"BM", gap=b"", pad_byte=b"\x00", cut=0) -> bytes:
    """24-bit BMP from (r, g, b) rows given in on-disk order."""
    width = len(disk_rows[0]) if disk_rows else 1
    stride = ((width * 3) + 3) & ~3
    data = b""
    for row in disk_rows:
        raw = b"".join(bytes((b, g, r)) for r, g, b in row)
        data += raw + pad_byte * (stride - len(raw))
    if cut:
        data = data[:-cut]
    offset = 54 + len(gap)
    height = len(disk_rows) if height is None else height
    fh = struct.pack("<2sIHHI", magic, offset + len(data), 0, 0, offset)
    ih = struct.pack("<IiiHHIIiiII", 40, width, height, 1, bit_depth, compression,
                     len(data), 2835, 2835, 0, 0)
    return fh + ih + gap + data


def luma(r, g, b) -> int:
    return int(0.299 * r + 0.587 * g + 0.114 * b)


def write_qr_bmp(path: Path, text: str, scale: int = 8) -> Path:
    """QR symbol drawn by OpenCV, saved as a 24-bit BMP by Pillow."""
    qr = cv2.QRCodeEncoder.create().encode(text)
    qr = cv2.resize(qr, None, fx=scale, fy=scale, interpolation=cv2.INTER_NEAREST)
    qr = cv2.copyMakeBorder(qr, 4 * scale, 4 * scale, 4 * scale, 4 * scale,
                            cv2.BORDER_CONSTANT, value=255)
    rgb = np.dstack([qr, qr, qr]).astype(np.uint8)
    Image.fromarray(rgb).save(path, format="BMP")
    return path


@pytest.fixture
def qr_bmp(tmp_path):
    return write_qr_bmp(tmp_path / "hello.bmp", "hello from a bitmap")


@pytest.fixture
def blank_bmp(tmp_path):
    p = tmp_path / "blank.bmp"
    p.write_bytes(build_bmp([[(255, 255, 255)] * 40 for _ in range(40)]))
    return p
