"""Voucher code generation for the three storefront denominations."""

from __future__ import annotations

import secrets
import string

CODE_LENGTH = 15
CODE_ALPHABET = string.ascii_uppercase + string.digits

PREFIXES = {
    "500": "SVI",
    "1000": "SVDJ",
    "2000": "SVCS",
}


def generate_codes(kind: str, count: int) -> list[str]:
    """
    Generate `count` random codes for a denomination ("500", "1000" or "2000").

    Each code is the denomination prefix followed by random uppercase
    alphanumerics, CODE_LENGTH characters in total.
    """
    prefix = PREFIXES.get(str(kind))
    if prefix is None:
        raise ValueError(f"Invalid type {kind!r}; expected one of {', '.join(PREFIXES)}")
    if count < 0:
        raise ValueError("count must be non-negative")
    suffix_length = CODE_LENGTH - len(prefix)
    return [
        prefix + "".join(secrets.choice(CODE_ALPHABET) for _ in range(suffix_length))
        for _ in range(count)
    ]
