"""
Phone Utilities
===============
Normalization and validation of phone numbers.
"""

from .normalizer import (
    INVALID_PHONE,
    normalize_phone,
    to_ascii_digits,
    is_valid_phone,
    has_allowed_prefix,
    mask_phone,
)

__all__ = [
    "INVALID_PHONE",
    "normalize_phone",
    "to_ascii_digits",
    "is_valid_phone",
    "has_allowed_prefix",
    "mask_phone",
]
