"""QR code rendering for minted identity tokens."""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.image.pil import PilImage

from .config import QRRenderConfig
from .utils.time import utc_now

_ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


@dataclass(frozen=True)
class RenderedTokenImage:
    """PNG encoding of a token string as a QR code."""

    content: bytes
    width: int
    height: int
    created_at: datetime
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.content).decode('ascii')}"


def render_qr(data: str, config: QRRenderConfig, *, created_at: Optional[datetime] = None) -> RenderedTokenImage:
    """Render ``data`` into a square PNG of exactly ``config.size`` pixels."""
    qr = qrcode.QRCode(
        error_correction=_ERROR_CORRECTION[config.error_correction],
        box_size=1,
        border=config.margin,
        image_factory=PilImage,
    )
    qr.add_data(data)
    qr.make(fit=True)

    # Draw at the largest whole box size that fits, then scale without smoothing.
    qr.box_size = max(1, config.size // (qr.modules_count + 2 * config.margin))
    img = qr.make_image(fill_color=config.dark, back_color=config.light).get_image().convert("RGB")
    if img.size != (config.size, config.size):
        img = img.resize((config.size, config.size), Image.Resampling.NEAREST)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return RenderedTokenImage(
        content=buffer.getvalue(),
        width=config.size,
        height=config.size,
        created_at=created_at or utc_now(),
    )
