"""
Phone Normalizer
================
Converts assorted phone-number spellings into canonical international form.

Canonical form is ``+`` followed by 8 to 15 digits. Invalid input yields the
empty string; nothing in this module raises.
"""

import re
import unicodedata
from typing import Iterable

INVALID_PHONE = ""

_CANONICAL = re.compile(r"\+[0-9]{8,15}")
# Anything except digits, and a "+" that is not the first character.
_NON_DIGIT_EXCEPT_LEADING_PLUS = re.compile(r"(?!^\+)[^0-9]")

COUNTRY_CODE = "98"


def to_ascii_digits(value: str) -> str:
    """Map every Unicode decimal digit (Persian, Arabic-Indic, ...) to ASCII."""
    chars = []
    for ch in value:
        if "0" <= ch <= "9":
            chars.append(ch)
            continue
        digit = unicodedata.decimal(ch, None)
        chars.append(str(digit) if digit is not None else ch)
    return "".join(chars)


def _rewrite_national_prefix(digits: str) -> str:
    if digits.startswith("0098"):
        digits = "+98" + digits[4:]

    if digits.startswith("098"):
        digits = "+98" + digits[3:]

    if digits.startswith("98"):
        digits = "+98" + digits[2:]

    # Domestic mobile: 09xxxxxxxxx
    if digits.startswith("0") and len(digits) >= 10:
        digits = "+98" + digits[1:]

    # Bare mobile: 9xxxxxxxxx
    if len(digits) == 10 and digits.startswith("9"):
        digits = "+98" + digits

    return digits


def normalize_phone(raw) -> str:
    """
    Normalize a phone number to canonical international form.

    Args:
        raw: Phone number as typed by the user

    Returns:
        ``+<8-15 digits>``, or ``""`` if the input cannot be a phone number
    """
    if not isinstance(raw, str):
        return INVALID_PHONE

    converted = to_ascii_digits(raw.strip())
    converted = _NON_DIGIT_EXCEPT_LEADING_PLUS.sub("", converted)
    converted = _rewrite_national_prefix(converted)

    if not _CANONICAL.fullmatch(converted):
        return INVALID_PHONE
    return converted


def is_valid_phone(value) -> bool:
    """True if the value is already in canonical form."""
    return isinstance(value, str) and bool(_CANONICAL.fullmatch(value))


def has_allowed_prefix(phone: str, prefixes: Iterable[str]) -> bool:
    """Check a canonical number against a country-prefix allow-list."""
    if not is_valid_phone(phone):
        return False
    return any(phone.startswith(prefix) for prefix in prefixes)


def mask_phone(phone: str) -> str:
    """
    Mask a phone number for logs.

    Keeps the country prefix and the last 4 digits: ``+98******6789``.
    """
    if not phone:
        return ""
    if len(phone) <= 7:
        return "*" * len(phone)
    return phone[:3] + "*" * (len(phone) - 7) + phone[-4:]
