"""Error kinds raised by the codec, engine, URI parser and registry."""

from __future__ import annotations


class OmniToolError(ValueError):
    """Base class for every error this package raises on bad input."""


class InvalidEncoding(OmniToolError):
    """Secret text contains a character outside the Base32 alphabet."""

    def __init__(self, char: str) -> None:
        self.char = char
        super().__init__(f"Invalid Base32 character: {char}")


class InvalidParameter(OmniToolError):
    """A code-generation parameter is out of range (non-positive digits/period, empty key)."""

    def __init__(self, name: str, value: object, message: str | None = None) -> None:
        self.name = name
        self.value = value
        super().__init__(message or f"{name} must be a positive integer, got {value!r}")


class InvalidUri(OmniToolError):
    """Malformed or wrong-scheme otpauth:// URI.

    The message is always the same; the underlying failure, if any, is
    chained as ``__cause__``.
    """

    def __init__(self) -> None:
        super().__init__("Invalid OTP Auth URI")


class InvalidFormat(OmniToolError):
    """Import payload is missing ``version`` or ``accounts``."""

    def __init__(self, message: str = "Invalid data format") -> None:
        super().__init__(message)
