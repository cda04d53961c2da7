"""Pydantic models for accounts, provisioning parameters and export payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from omnitool.crypto import generate_id

EXPORT_VERSION = "1.0"


# === Enums ===


class Algorithm(StrEnum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"


class OtpType(StrEnum):
    TOTP = "totp"
    HOTP = "hotp"


# === Stored records ===


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, as persisted and exported."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Account(_CamelModel):
    """One authenticator entry.

    ``created_at`` (epoch millis) and ``order`` are assigned when the
    account is added to the registry. Unknown fields from older exports
    are kept so they survive a round-trip.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(default_factory=generate_id)
    issuer: str
    account: str = ""
    secret: str
    digits: int = 6
    period: int = 30
    algorithm: str = Algorithm.SHA1.value
    created_at: int | None = None
    order: int | None = None


class OtpAuthParams(BaseModel):
    """Fields carried by an ``otpauth://`` URI."""

    type: str
    issuer: str
    account: str
    secret: str = ""
    algorithm: str = Algorithm.SHA1.value
    digits: int = 6
    period: int = 30

    def to_account(self) -> Account:
        """New account for these parameters (label falls back to the issuer)."""
        return Account(
            issuer=self.issuer,
            account=self.account or self.issuer,
            secret=self.secret,
            digits=self.digits,
            period=self.period,
            algorithm=Algorithm.SHA1.value,
        )


class PasswordOptions(BaseModel):
    """Stored preferences for the password generator."""

    length: int = 12
    uppercase: bool = True
    lowercase: bool = True
    numbers: bool = True
    symbols: bool = True


# === Export / import ===


class ExportPayload(_CamelModel):
    version: str = EXPORT_VERSION
    exported_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat(timespec="milliseconds"))
    accounts: list[Account] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)


class ImportResult(BaseModel):
    success: bool
    imported: int = 0
    skipped: int = 0
    error: str | None = None
