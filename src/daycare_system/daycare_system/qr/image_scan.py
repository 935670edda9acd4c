from __future__ import annotations

from typing import BinaryIO, Optional

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ValidationError


def decode_qr_image(stream: BinaryIO) -> Optional[str]:
    """Return the text of the first QR code found in an uploaded picture, or None."""
    # needs the zbar shared library, only loaded when a picture is actually scanned
    from pyzbar.pyzbar import decode as pyzbar_decode

    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Image illisible")

    decoded = pyzbar_decode(img)
    if not decoded:
        return None
    return decoded[0].data.decode("utf-8").strip()
