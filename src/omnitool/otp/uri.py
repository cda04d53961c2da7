"""Parsing of ``otpauth://`` provisioning URIs (the Key Uri Format).

    otpauth://totp/Example:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=Example
"""

from __future__ import annotations

from urllib.parse import parse_qs, unquote, urlsplit

from omnitool.errors import InvalidUri
from omnitool.models import OtpAuthParams

SCHEME = "otpauth"
UNKNOWN = "Unknown"


def _first(query: dict[str, list[str]], name: str) -> str | None:
    values = query.get(name)
    return values[0] if values else None


def _parse(uri: str) -> OtpAuthParams:
    parts = urlsplit(uri)
    if parts.scheme != SCHEME:
        raise ValueError(f"unexpected scheme {parts.scheme!r}")

    path = unquote(parts.path[1:] if parts.path.startswith("/") else parts.path)
    issuer, sep, account = path.partition(":")
    if not sep:
        issuer, account = "", path

    query = parse_qs(parts.query, keep_blank_values=True)
    query_issuer = _first(query, "issuer")
    if query_issuer is not None:
        issuer = query_issuer

    return OtpAuthParams(
        type=parts.netloc,
        issuer=issuer or UNKNOWN,
        account=account or UNKNOWN,
        secret=_first(query, "secret") or "",
        algorithm=_first(query, "algorithm") or "SHA1",
        digits=int(_first(query, "digits") or "6", 10),
        period=int(_first(query, "period") or "30", 10),
    )


def parse(uri: str) -> OtpAuthParams:
    """Parse a provisioning URI.

    Every failure (wrong scheme, malformed URI, non-numeric digits or
    period) surfaces as InvalidUri; the original error is chained.
    """
    try:
        return _parse(uri)
    except (ValueError, TypeError, AttributeError) as exc:
        raise InvalidUri() from exc
