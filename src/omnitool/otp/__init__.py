"""RFC 6238 code generation and otpauth:// provisioning URIs."""

from omnitool.otp.base32 import decode as base32_decode
from omnitool.otp.totp import (
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    TotpParams,
    format_for_display,
    generate_code,
    seconds_remaining,
)
from omnitool.otp.uri import parse as parse_uri

__all__ = [
    "DEFAULT_DIGITS",
    "DEFAULT_PERIOD",
    "TotpParams",
    "base32_decode",
    "format_for_display",
    "generate_code",
    "parse_uri",
    "seconds_remaining",
]
