from __future__ import annotations
from io import BytesIO

import qrcode

def code_qr_png(access_code: str) -> bytes:
    """PNG of the access code, for printing or showing on a phone at the post."""
    img = qrcode.make(access_code.upper())
    b = BytesIO()
    img.save(b, format="PNG")
    return b.getvalue()
