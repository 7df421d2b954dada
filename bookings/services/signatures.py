"""Signature capture helpers: validate the PNG data URL posted by the drawing pad."""

from __future__ import annotations

import base64
import binascii
import io
import re

from django.conf import settings
from django.utils import timezone
from PIL import Image, UnidentifiedImageError

from ..models import Rental
from .errors import BookingError

DATA_URL_RE = re.compile(r"^data:image/png;base64,(?P<payload>[A-Za-z0-9+/=\s]+)$")
SIGNATURE_ROLES = ("customer", "company")


class SignatureError(BookingError):
    """The posted signature is not a usable PNG drawing."""


def decode_signature(data_url: str) -> Image.Image:
    match = DATA_URL_RE.match((data_url or "").strip())
    if not match:
        raise SignatureError("Signature must be a PNG data URL.")

    max_bytes = int(getattr(settings, "SIGNATURE_MAX_BYTES", 512 * 1024))
    try:
        raw = base64.b64decode(match.group("payload"), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise SignatureError("Signature payload is not valid base64.") from exc
    if len(raw) > max_bytes:
        raise SignatureError("Signature image is too large.")

    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise SignatureError("Signature payload is not a readable image.") from exc
    if image.format != "PNG":
        raise SignatureError("Signature must be a PNG image.")
    return image


def is_blank(image: Image.Image) -> bool:
    """True when nothing was drawn (fully transparent or a single flat colour)."""
    rgba = image.convert("RGBA")
    alpha_min, alpha_max = rgba.getchannel("A").getextrema()
    if alpha_max == 0:
        return True
    extrema = rgba.convert("L").getextrema()
    return extrema[0] == extrema[1] and alpha_min == alpha_max


def apply_signature(rental: Rental, role: str, data_url: str) -> Rental:
    """
    Store a validated signature on the rental.

    The first customer signature also records the moment of digital consent.
    """
    if role not in SIGNATURE_ROLES:
        raise SignatureError(f"Unknown signature role: {role!r}")
    image = decode_signature(data_url)
    if is_blank(image):
        raise SignatureError("Signature is empty.")

    update_fields = []
    if role == "customer":
        rental.customer_signature = data_url.strip()
        update_fields.append("customer_signature")
        if not rental.digital_consent_at:
            rental.digital_consent_at = timezone.now()
            update_fields.append("digital_consent_at")
    else:
        rental.company_signature = data_url.strip()
        update_fields.append("company_signature")
    rental.save(update_fields=update_fields)
    return rental
