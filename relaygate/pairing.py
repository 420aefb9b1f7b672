"""
Pairing code rendering.

Protocol clients emit pairing codes as raw strings. The HTTP API serves them
as PNG data URLs that a browser can drop straight into an ``<img>`` tag.
"""

from __future__ import annotations

import base64
import io

import qrcode
import qrcode.constants

DATA_URL_PREFIX = "data:image/png;base64,"


def render_pairing_payload(code: str) -> str:
    """Render a raw pairing code as a PNG data URL.

    Values that are already data URLs (clients that render their own image)
    are returned unchanged.

    Raises:
        ValueError: If ``code`` is empty.
    """
    if not code:
        raise ValueError("pairing code cannot be empty")
    if code.startswith("data:"):
        return code
    return DATA_URL_PREFIX + base64.b64encode(build_qr_png(code)).decode("ascii")


def build_qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
