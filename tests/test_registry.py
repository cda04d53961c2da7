"""Tests for the account registry transforms and store-backed service."""

from __future__ import annotations

import asyncio

import pytest

from omnitool import registry, storage
from omnitool.errors import InvalidFormat
from omnitool.models import Account
from omnitool.registry import AccountRegistry
from omnitool.storage import MemoryStore


def _acc(id_: str, issuer: str = "Acme") -> Account:
    return Account(id=id_, issuer=issuer, account=f"{id_}@example.com", secret="JBSWY3DPEHPK3PXP")


# === Pure transforms ===


def test_add_assigns_order_and_timestamp():
    accounts = registry.add_account([], _acc("a"), now_ms=1000)
    accounts = registry.add_account(accounts, _acc("b"), now_ms=2000)
    assert [a.id for a in accounts] == ["a", "b"]
    assert [a.order for a in accounts] == [0, 1]
    assert [a.created_at for a in accounts] == [1000, 2000]


def test_add_does_not_mutate_input():
    original = [_acc("a")]
    acc = _acc("b")
    result = registry.add_account(original, acc)
    assert len(original) == 1
    assert acc.order is None
    assert result[-1].order == 1


def test_update_merges_fields():
    accounts = registry.add_account([], _acc("a"), now_ms=5)
    updated = registry.update_account(accounts, "a", {"issuer": "New", "digits": 8})
    assert updated[0].issuer == "New"
    assert updated[0].digits == 8
    assert updated[0].secret == accounts[0].secret
    assert updated[0].created_at == 5
    assert accounts[0].issuer == "Acme"


def test_update_accepts_camel_case_and_keeps_id():
    accounts = [_acc("a")]
    updated = registry.update_account(accounts, "a", {"createdAt": 7, "id": "zzz"})
    assert updated[0].created_at == 7
    assert updated[0].id == "a"


def test_update_unknown_id_is_noop():
    accounts = [_acc("a"), _acc("b")]
    assert registry.update_account(accounts, "missing", {"issuer": "X"}) == accounts


def test_delete():
    accounts = [_acc("a"), _acc("b")]
    assert [a.id for a in registry.delete_account(accounts, "a")] == ["b"]
    assert registry.delete_account(accounts, "missing") == accounts


def test_merge_import_skips_existing_ids():
    existing = [_acc("a", issuer="Original")]
    incoming = [_acc("a", issuer="Changed"), _acc("b"), _acc("b")]
    merged, imported, skipped = registry.merge_import(existing, incoming)
    assert [a.id for a in merged] == ["a", "b"]
    assert merged[0].issuer == "Original"
    assert imported == 1
    assert skipped == 2


@pytest.mark.parametrize("data", [{}, {"accounts": []}, {"version": "1.0"}, {"version": "", "accounts": []}])
def test_parse_payload_requires_version_and_accounts(data):
    with pytest.raises(InvalidFormat):
        registry.parse_payload(data)


# === Store-backed registry ===


def test_registry_crud():
    async def _run():
        reg = AccountRegistry(MemoryStore())
        a = await reg.add(_acc("a"))
        await reg.add(_acc("b"))
        await reg.update("a", {"issuer": "Renamed"})
        await reg.delete("b")
        return a, await reg.list_accounts()

    added, accounts = asyncio.run(_run())
    assert added.order == 0
    assert added.created_at is not None
    assert [(a.id, a.issuer) for a in accounts] == [("a", "Renamed")]


def test_registry_update_and_delete_unknown_are_silent():
    async def _run():
        reg = AccountRegistry(MemoryStore())
        await reg.add(_acc("a"))
        before = await reg.list_accounts()
        await reg.update("nope", {"issuer": "X"})
        await reg.delete("nope")
        return before, await reg.list_accounts()

    before, after = asyncio.run(_run())
    assert before == after


def test_registry_persists_camel_case():
    store = MemoryStore()
    asyncio.run(AccountRegistry(store).add(_acc("a")))
    raw = asyncio.run(store.get(storage.ACCOUNTS))
    assert "createdAt" in raw[0]
    assert raw[0]["order"] == 0


def test_export_then_import_into_empty_registry():
    async def _run():
        src = AccountRegistry(MemoryStore({storage.SETTINGS: {"theme": "dark"}}))
        for i in range(3):
            await src.add(_acc(f"id{i}", issuer=f"Issuer {i}"))
        payload = (await src.export()).dump()

        dst = AccountRegistry(MemoryStore())
        result = await dst.import_(payload)
        return payload, result, await src.list_accounts(), await dst.list_accounts()

    payload, result, src_accounts, dst_accounts = asyncio.run(_run())
    assert payload["version"] == "1.0"
    assert payload["settings"] == {"theme": "dark"}
    assert "exportedAt" in payload
    assert result.success
    assert result.imported == 3
    assert result.skipped == 0
    assert dst_accounts == src_accounts
    assert [a.order for a in dst_accounts] == [0, 1, 2]


def test_import_twice_skips_everything():
    async def _run():
        reg = AccountRegistry(MemoryStore())
        await reg.add(_acc("existing"))
        payload = {"version": "1.0", "accounts": [_acc("x").dump(), _acc("y").dump()]}
        first = await reg.import_(payload)
        second = await reg.import_(payload)
        return first, second, await reg.list_accounts()

    first, second, accounts = asyncio.run(_run())
    assert (first.imported, first.skipped) == (2, 0)
    assert (second.imported, second.skipped) == (0, 2)
    assert [a.id for a in accounts] == ["existing", "x", "y"]


def test_import_failures_become_results():
    async def _run():
        reg = AccountRegistry(MemoryStore())
        missing = await reg.import_({"accounts": []})
        bad_account = await reg.import_({"version": "1.0", "accounts": [{"id": "a"}]})
        not_a_dict = await reg.import_(["nope"])
        return missing, bad_account, not_a_dict, await reg.list_accounts()

    missing, bad_account, not_a_dict, accounts = asyncio.run(_run())
    assert not missing.success
    assert missing.error == "Invalid data format"
    assert not bad_account.success
    assert bad_account.error
    assert not not_a_dict.success
    assert accounts == []


def test_filter_accounts():
    accounts = [
        Account(id="a", issuer="GitHub", account="alice@example.com", secret="S"),
        Account(id="b", issuer="AWS", account="ops-github-bot", secret="S"),
        Account(id="c", issuer="Google", account="carol", secret="S"),
    ]
    assert registry.filter_accounts(accounts, "") == accounts
    assert [a.id for a in registry.filter_accounts(accounts, "gItHuB")] == ["a", "b"]
    assert [a.id for a in registry.filter_accounts(accounts, "CAROL")] == ["c"]
    assert registry.filter_accounts(accounts, "nothing") == []
