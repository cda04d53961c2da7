"""RFC 6238 time-based one-time passwords.

The HMAC primitive is injected (see ``omnitool.crypto``) so the engine
itself only does the counter arithmetic and dynamic truncation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from omnitool.crypto import SHA1_DIGEST_SIZE, HmacFn, hmac_sha1
from omnitool.errors import InvalidParameter
from omnitool.otp.base32 import decode

DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30


@dataclass(frozen=True)
class TotpParams:
    """Inputs for a single code computation. Never persisted."""

    key: bytes
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    timestamp_ms: int | float = 0

    @property
    def counter(self) -> int:
        return int(self.timestamp_ms // 1000 // self.period)


def _check_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidParameter(name, value)


def counter_bytes(counter: int) -> bytes:
    """8-byte big-endian encoding of the step counter."""
    return counter.to_bytes(8, "big")


def truncate(digest: bytes, digits: int) -> str:
    """Dynamic truncation (RFC 4226 section 5.3) to a zero-padded code."""
    if len(digest) < SHA1_DIGEST_SIZE:
        raise InvalidParameter("digest", len(digest), "HMAC digest must be at least 20 bytes")
    offset = digest[-1] & 0x0F
    binary = (
        (digest[offset] & 0x7F) << 24
        | digest[offset + 1] << 16
        | digest[offset + 2] << 8
        | digest[offset + 3]
    )
    return str(binary % 10**digits).zfill(digits)


async def compute(params: TotpParams, hmac: HmacFn = hmac_sha1) -> str:
    """Produce the code for already-decoded parameters."""
    _check_positive("digits", params.digits)
    _check_positive("period", params.period)
    digest = await hmac(params.key, counter_bytes(params.counter))
    return truncate(digest, params.digits)


async def generate_code(
    secret: str,
    *,
    period: int = DEFAULT_PERIOD,
    digits: int = DEFAULT_DIGITS,
    timestamp_ms: int | float | None = None,
    hmac: HmacFn = hmac_sha1,
) -> str:
    """Generate the TOTP code for a Base32 secret.

    ``timestamp_ms`` defaults to the current wall-clock time. Raises
    InvalidEncoding for a bad secret and InvalidParameter for
    non-positive ``digits`` or ``period`` or a secret that decodes to
    nothing.
    """
    _check_positive("digits", digits)
    _check_positive("period", period)
    key = decode(secret)
    if not key:
        raise InvalidParameter("secret", 0, "secret decodes to an empty key")
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    params = TotpParams(key=key, digits=digits, period=period, timestamp_ms=timestamp_ms)
    return await compute(params, hmac)


def seconds_remaining(period: int = DEFAULT_PERIOD, now: float | None = None) -> int:
    """Seconds left in the current step, in ``[1, period]``."""
    _check_positive("period", period)
    current = int(time.time() if now is None else now)
    return period - (current % period)


def format_for_display(code: str) -> str:
    """Split a code into two groups, e.g. ``"123456"`` -> ``"123 456"``."""
    mid = len(code) // 2
    return f"{code[:mid]} {code[mid:]}"
