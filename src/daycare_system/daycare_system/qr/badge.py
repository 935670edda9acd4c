from __future__ import annotations

import io
from datetime import date
from typing import Optional

import qrcode
from PIL import Image, ImageDraw, ImageFont

from ..children.model import Child
from ..core.constants import BADGE_HEIGHT, BADGE_WIDTH
from ..core.sections import section_label

_BRAND = "Les Petits Rayons du Soleil"
_ACCENT = (246, 173, 85)
_TEXT = (45, 55, 72)


def qr_image(data: str, *, box_size: int = 10, border: int = 2) -> Image.Image:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr.make_image(fill_color="black", back_color="white").convert("RGB")


def qr_png(data: str) -> bytes:
    buf = io.BytesIO()
    qr_image(data).save(buf, format="PNG")
    return buf.getvalue()


def _font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default()


def render_badge(
    child: Child,
    payload: str,
    *,
    group_name: Optional[str] = None,
    generated_on: Optional[date] = None,
) -> bytes:
    """Printable ID card (credit-card ratio) with the child's QR payload on the right."""
    generated_on = generated_on or date.today()
    card = Image.new("RGB", (BADGE_WIDTH, BADGE_HEIGHT), "white")
    draw = ImageDraw.Draw(card)

    draw.rectangle([0, 0, BADGE_WIDTH, 110], fill=_ACCENT)
    draw.text((40, 35), _BRAND, fill="white", font=_font(40))

    code_size = 420
    code = qr_image(payload).resize((code_size, code_size), Image.Resampling.NEAREST)
    card.paste(code, (BADGE_WIDTH - code_size - 40, 160))

    lines = [
        (child.full_name, 44),
        (section_label(child.section), 30),
        (group_name or "", 28),
        (f"Né(e) le {child.birth_date:%d/%m/%Y}", 26),
        (f"Code : {child.code_qr_id}", 30),
    ]
    y = 170
    for text, size in lines:
        if not text:
            continue
        draw.text((40, y), text, fill=_TEXT, font=_font(size))
        y += size + 30

    draw.text((40, BADGE_HEIGHT - 90), "Présentez ce badge à l'arrivée et au départ", fill=_TEXT, font=_font(22))
    draw.text((40, BADGE_HEIGHT - 55), f"Généré le {generated_on:%d/%m/%Y}", fill=_TEXT, font=_font(18))
    draw.rectangle([0, BADGE_HEIGHT - 20, BADGE_WIDTH, BADGE_HEIGHT], fill=_ACCENT)

    buf = io.BytesIO()
    card.save(buf, format="PNG")
    return buf.getvalue()
