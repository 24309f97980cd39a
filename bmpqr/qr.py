# -*- coding: utf-8 -*-
"""
Moteur de reconnaissance QR sur buffer niveaux de gris.

Contrat calqué sur un lecteur C classique :
    scanner.resize(w, h); buf = scanner.begin(); buf[...] = gray; scanner.end()
    for i in range(scanner.count()): scanner.decode(i) -> SymbolResult

- Moteur par défaut : OpenCV (`cv2.QRCodeDetector`).
- `pyzbar` est utilisable via engine="pyzbar" (zbar requis, import paresseux).
"""
from __future__ import annotations
import importlib.util
import logging
from typing import List, NamedTuple, Optional

import numpy as np  # type: ignore
import cv2  # type: ignore

from bmpqr.bmp import AllocationFailure, DecodedBitmap

logger = logging.getLogger(__name__)

ENGINES = ("opencv", "pyzbar")
UNREADABLE = "symbol detected but its payload could not be decoded"


class SymbolResult(NamedTuple):
    index: int
    payload: Optional[str]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

# -----------------------------
# Backends
# -----------------------------

def _detect_opencv(gray: np.ndarray) -> List[str]:
    """OpenCV multi puis single; '' = symbole localisé mais non décodé."""
    det = cv2.QRCodeDetector()
    multi: List[str] = []
    try:
        ok, decoded_info, points, _ = det.detectAndDecodeMulti(gray)
        if ok and points is not None:
            multi = [s or "" for s in decoded_info]
            if any(multi):
                logger.info("OpenCV multi OK: %d code(s)", len(multi))
                return multi
    except cv2.error as e:
        logger.warning("OpenCV multi error: %r", e)
    data, points, _ = det.detectAndDecode(gray)
    if data:
        logger.info("OpenCV single OK")
        return [data]
    if multi:
        logger.info("OpenCV: %d code(s) located, none decoded", len(multi))
        return multi
    return [""] if points is not None else []


def _detect_pyzbar(gray: np.ndarray) -> List[str]:
    from pyzbar.pyzbar import decode, ZBarSymbol  # type: ignore
    res = decode(gray, symbols=[ZBarSymbol.QRCODE])
    out = [r.data.decode("utf-8", "replace") for r in res]
    logger.info("pyzbar: %d code(s)", len(out))
    return out

# -----------------------------
# Public API
# -----------------------------

class QRScanner:
    """Owns the engine input buffer and the results of the last `end()`."""

    def __init__(self, engine: str = "opencv"):
        if engine not in ENGINES:
            raise ValueError(f"unknown QR engine {engine!r} (expected one of {', '.join(ENGINES)})")
        if engine == "pyzbar" and not importlib.util.find_spec("pyzbar"):
            raise RuntimeError("pyzbar non disponible: pip install pyzbar (libzbar0 requis)")
        self.engine = engine
        self._buf = np.zeros((0, 0), dtype=np.uint8)
        self._texts: List[str] = []

    @property
    def width(self) -> int:
        return self._buf.shape[1]

    @property
    def height(self) -> int:
        return self._buf.shape[0]

    def resize(self, width: int, height: int) -> None:
        try:
            self._buf = np.zeros((height, width), dtype=np.uint8)
        except (MemoryError, ValueError) as e:
            raise AllocationFailure(f"Failed to resize QR engine buffer to {width}x{height}: {e}") from e
        self._texts = []

    def begin(self) -> np.ndarray:
        """Writable (height, width) buffer; write at most width*height samples."""
        return self._buf

    def end(self) -> None:
        if self._buf.size == 0:
            self._texts = []
            return
        if self.engine == "pyzbar":
            self._texts = _detect_pyzbar(self._buf)
        else:
            self._texts = _detect_opencv(self._buf)

    def count(self) -> int:
        return len(self._texts)

    def decode(self, index: int) -> SymbolResult:
        text = self._texts[index]
        if not text:
            return SymbolResult(index, None, UNREADABLE)
        return SymbolResult(index, text)

    def scan(self, bitmap: DecodedBitmap) -> List[SymbolResult]:
        """resize + begin + copy + end, then collect every symbol."""
        self.resize(bitmap.width, bitmap.height)
        np.copyto(self.begin(), bitmap.gray)
        self.end()
        return [self.decode(i) for i in range(self.count())]
