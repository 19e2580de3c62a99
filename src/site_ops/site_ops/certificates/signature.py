from __future__ import annotations

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ValidationError

DATA_URL_PREFIX = "data:image/png;base64,"
MAX_SIGNATURE_BYTES = 2 * 1024 * 1024
INK_THRESHOLD = 200


def decode_signature(data_url: str) -> Image.Image:
    """Decode a signature pad PNG data URL, rejecting malformed or blank input."""
    value = (data_url or "").strip()
    if not value.startswith(DATA_URL_PREFIX):
        raise ValidationError("Signature must be a PNG data URL")

    try:
        raw = base64.b64decode(value[len(DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Signature data is not valid base64")
    if not raw:
        raise ValidationError("Signature is empty")
    if len(raw) > MAX_SIGNATURE_BYTES:
        raise ValidationError("Signature image is too large")

    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Signature is not a readable image")

    flat = flatten(img)
    if not has_ink(flat):
        raise ValidationError("Please sign before submitting")
    return flat


def flatten(img: Image.Image) -> Image.Image:
    """Composite onto white so transparent pads render like paper."""
    rgba = img.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    background.alpha_composite(rgba)
    return background.convert("RGB")


def has_ink(img: Image.Image) -> bool:
    mask = img.convert("L").point(lambda p: 255 if p < INK_THRESHOLD else 0)
    return mask.getbbox() is not None


def crop_to_ink(img: Image.Image, *, padding: int = 8) -> Image.Image:
    mask = img.convert("L").point(lambda p: 255 if p < INK_THRESHOLD else 0)
    box = mask.getbbox()
    if not box:
        return img
    left, top, right, bottom = box
    return img.crop(
        (
            max(left - padding, 0),
            max(top - padding, 0),
            min(right + padding, img.width),
            min(bottom + padding, img.height),
        )
    )
