"""Normalización de teléfonos al formato de direccionamiento de WhatsApp (JID).

Reglas, en orden:
  1. quitar espacios, guiones y paréntesis;
  2. si ya trae ``@`` se devuelve tal cual;
  3. sin ``+``: ``549...`` -> ``+549...``; ``9...`` -> ``+549...``; resto -> ``+549...``;
  4. se quita el ``+`` y se agrega el sufijo ``@s.whatsapp.net``.
"""
from __future__ import annotations
import re

COUNTRY_CODE = "54"
MOBILE_PREFIX = "9"
ADDRESS_SUFFIX = "@s.whatsapp.net"

_STRIP = re.compile(r"[\s\-()]")

def normalize_phone(
    raw: str,
    *,
    country_code: str = COUNTRY_CODE,
    mobile_prefix: str = MOBILE_PREFIX,
    suffix: str = ADDRESS_SUFFIX,
) -> str:
    """Convierte un teléfono cargado a mano en la dirección que espera el gateway."""
    formatted = _STRIP.sub("", raw or "")
    if "@" in formatted:
        return formatted
    if not formatted.startswith("+"):
        if formatted.startswith(country_code + mobile_prefix):
            formatted = "+" + formatted
        elif formatted.startswith(mobile_prefix):
            formatted = "+" + country_code + formatted
        else:
            formatted = "+" + country_code + mobile_prefix + formatted
    return formatted.replace("+", "", 1) + suffix
