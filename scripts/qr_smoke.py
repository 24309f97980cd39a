import sys
from pathlib import Path

import cv2, numpy as np
from PIL import Image

from bmpqr.bmp import decode_file
from bmpqr.qr import QRScanner

if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python scripts/qr_smoke.py <text> <out.bmp>")
        sys.exit(1)
    text, out = sys.argv[1], Path(sys.argv[2])
    qr = cv2.QRCodeEncoder.create().encode(text)
    qr = cv2.resize(qr, None, fx=8, fy=8, interpolation=cv2.INTER_NEAREST)
    qr = cv2.copyMakeBorder(qr, 32, 32, 32, 32, cv2.BORDER_CONSTANT, value=255)
    Image.fromarray(np.dstack([qr, qr, qr])).save(out, format="BMP")
    res = QRScanner().scan(decode_file(out))
    print("Decoded:", [r.payload for r in res])
