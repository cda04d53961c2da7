"""Base32 (RFC 4648) decoding for user-entered TOTP secrets.

Secrets pasted by users arrive in every shape: lowercase, grouped in
blocks of four with spaces, with or without ``=`` padding. They are
normalized first and then decoded 5 bits at a time. Trailing bits that
do not fill a whole byte are dropped, so the output is always
``floor(len * 5 / 8)`` bytes long.
"""

from __future__ import annotations

import re

from omnitool.errors import InvalidEncoding

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_INDEX = {c: i for i, c in enumerate(ALPHABET)}
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Strip whitespace, uppercase, and drop trailing ``=`` padding."""
    return _WHITESPACE.sub("", text).upper().rstrip("=")


def decode(text: str) -> bytes:
    """Decode Base32 text into raw key bytes.

    Raises InvalidEncoding naming the first character outside ``A-Z2-7``.
    An empty (or all-whitespace) input decodes to ``b""``.
    """
    encoded = normalize(text)
    out = bytearray()
    buffer = 0
    bits = 0
    for char in encoded:
        value = _INDEX.get(char)
        if value is None:
            raise InvalidEncoding(char)
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(out)
