"""
QR rendering for the pairing artifact.
"""

import base64
import io

import qrcode
import qrcode.image.svg


def render_data_uri(payload: str) -> str:
    """Render `payload` as an SVG QR code inside a `data:` URI."""
    image = qrcode.make(payload, image_factory=qrcode.image.svg.SvgPathImage)
    buf = io.BytesIO()
    image.save(buf)
    return "data:image/svg+xml;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def render_terminal(payload: str) -> str:
    """Render `payload` as block characters for a terminal."""
    code = qrcode.QRCode(border=1)
    code.add_data(payload)
    code.make(fit=True)
    out = io.StringIO()
    code.print_ascii(out=out, invert=True)
    return out.getvalue()
