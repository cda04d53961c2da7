"""Keyed-hash primitive and identifier generation.

The TOTP engine takes the HMAC function as a parameter so callers (and
tests) can swap it; ``hmac_sha1`` is the default implementation backed
by ``cryptography``.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

HmacFn = Callable[[bytes, bytes], Awaitable[bytes]]

SHA1_DIGEST_SIZE = 20


def hmac_sha1_sync(key: bytes, message: bytes) -> bytes:
    """HMAC-SHA1 over message. Returns the 20-byte digest."""
    h = crypto_hmac.HMAC(key, hashes.SHA1())
    h.update(message)
    return h.finalize()


async def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """Async HMAC-SHA1, the default primitive for generate_code()."""
    return hmac_sha1_sync(key, message)


def generate_id() -> str:
    """Random UUID4 text used as an account identifier."""
    return str(uuid.uuid4())
