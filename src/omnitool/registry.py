"""Account registry: ordered collection of authenticator accounts.

The module-level functions are pure transforms, old list in, new list
out. ``AccountRegistry`` wraps them in the read-all / transform /
write-all cycle against a ``KeyValueStore``. There is no locking:
concurrent un-awaited mutations can lose updates (last writer wins).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from omnitool import storage
from omnitool.errors import InvalidFormat
from omnitool.models import Account, ExportPayload, ImportResult

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _alias(name: str) -> str:
    field = Account.model_fields.get(name)
    return field.alias if field and field.alias else name


# ---------------------------------------------------------------------------
# Pure transforms
# ---------------------------------------------------------------------------


def add_account(accounts: Sequence[Account], account: Account, now_ms: int | None = None) -> list[Account]:
    stamped = account.model_copy(
        update={
            "created_at": _now_ms() if now_ms is None else now_ms,
            "order": len(accounts),
        }
    )
    return [*accounts, stamped]


def update_account(accounts: Sequence[Account], account_id: str, updates: Mapping[str, Any]) -> list[Account]:
    """Shallow-merge ``updates`` into the matching account. Unknown id: unchanged."""
    fields = {_alias(k): v for k, v in updates.items() if k != "id"}
    return [
        acc.model_validate({**acc.model_dump(by_alias=True), **fields}) if acc.id == account_id else acc
        for acc in accounts
    ]


def delete_account(accounts: Sequence[Account], account_id: str) -> list[Account]:
    return [acc for acc in accounts if acc.id != account_id]


def merge_import(accounts: Sequence[Account], incoming: Sequence[Account]) -> tuple[list[Account], int, int]:
    """Append incoming accounts whose id is not already present.

    Returns ``(merged, imported, skipped)``. Existing records are never
    overwritten.
    """
    known = {acc.id for acc in accounts}
    new = []
    for acc in incoming:
        if acc.id in known:
            continue
        known.add(acc.id)
        new.append(acc)
    return [*accounts, *new], len(new), len(incoming) - len(new)


def find_account(accounts: Sequence[Account], account_id: str) -> Account | None:
    return next((acc for acc in accounts if acc.id == account_id), None)


def filter_accounts(accounts: Sequence[Account], query: str) -> list[Account]:
    """Case-insensitive substring match on issuer or account label."""
    if not query:
        return list(accounts)
    needle = query.lower()
    return [acc for acc in accounts if needle in acc.issuer.lower() or needle in acc.account.lower()]


def parse_payload(data: Mapping[str, Any]) -> ExportPayload:
    """Validate an import document. Raises InvalidFormat without version/accounts."""
    if not isinstance(data, Mapping) or not data.get("version") or data.get("accounts") is None:
        raise InvalidFormat()
    return ExportPayload.model_validate(data)


# ---------------------------------------------------------------------------
# Store-backed service
# ---------------------------------------------------------------------------


class AccountRegistry:
    """Account CRUD and export/import on top of a key-value store."""

    def __init__(self, store: storage.KeyValueStore) -> None:
        self.store = store

    async def list_accounts(self) -> list[Account]:
        raw = await self.store.get(storage.ACCOUNTS, [])
        return [Account.model_validate(item) for item in raw]

    async def save(self, accounts: Sequence[Account]) -> None:
        await self.store.set(storage.ACCOUNTS, [acc.dump() for acc in accounts])

    async def get(self, account_id: str) -> Account | None:
        return find_account(await self.list_accounts(), account_id)

    async def add(self, account: Account) -> Account:
        accounts = add_account(await self.list_accounts(), account)
        await self.save(accounts)
        added = accounts[-1]
        logger.info("Added account %s (%s)", added.id, added.issuer)
        return added

    async def update(self, account_id: str, updates: Mapping[str, Any]) -> None:
        accounts = await self.list_accounts()
        if find_account(accounts, account_id) is None:
            logger.debug("Update skipped, no account %s", account_id)
            return
        await self.save(update_account(accounts, account_id, updates))
        logger.info("Updated account %s: %s", account_id, ", ".join(sorted(updates)))

    async def delete(self, account_id: str) -> None:
        accounts = await self.list_accounts()
        remaining = delete_account(accounts, account_id)
        if len(remaining) == len(accounts):
            logger.debug("Delete skipped, no account %s", account_id)
        else:
            logger.info("Deleted account %s", account_id)
        await self.save(remaining)

    async def export(self) -> ExportPayload:
        return ExportPayload(
            accounts=await self.list_accounts(),
            settings=await storage.get_settings(self.store),
        )

    async def import_(self, data: Mapping[str, Any]) -> ImportResult:
        """Merge an export document. Never raises; failures become a result."""
        try:
            payload = parse_payload(data)
            merged, imported, skipped = merge_import(await self.list_accounts(), payload.accounts)
            if imported:
                await self.save(merged)
        except Exception as exc:
            logger.warning("Import failed: %s", exc)
            return ImportResult(success=False, error=str(exc))
        logger.info("Imported %d accounts, skipped %d", imported, skipped)
        return ImportResult(success=True, imported=imported, skipped=skipped)
