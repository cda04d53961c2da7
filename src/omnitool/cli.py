"""CLI entry point for OmniTool.

Usage:
    omnitool codes [--watch] [--search TEXT]
    omnitool add ISSUER SECRET [--account NAME] [--digits 6] [--period 30]
    omnitool add-uri "otpauth://totp/..."
    omnitool update ID [--issuer ...] [--account ...] [--digits ...] [--period ...]
    omnitool delete ID
    omnitool export [FILE]
    omnitool import FILE
    omnitool status
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.live import Live
from rich.table import Table

from omnitool.config import Settings, StorageBackend
from omnitool.errors import OmniToolError
from omnitool.models import Account
from omnitool.otp.totp import generate_code
from omnitool.otp.uri import parse as parse_uri
from omnitool.registry import AccountRegistry, filter_accounts
from omnitool.storage import JsonFileStore, KeyValueStore, MemoryStore, init_defaults
from omnitool.ticker import CodeTicker, CodeView, render_accounts

console = Console()

T = TypeVar("T")


@contextlib.asynccontextmanager
async def open_store(cfg: Settings) -> AsyncIterator[KeyValueStore]:
    """Build the configured backend and seed its defaults."""
    if cfg.storage_backend == StorageBackend.POSTGRES:
        from omnitool.db import PostgresStore

        async with PostgresStore(cfg.database_url) as pg:
            await init_defaults(pg)
            yield pg
        return
    store: KeyValueStore
    if cfg.storage_backend == StorageBackend.MEMORY:
        store = MemoryStore()
    else:
        store = JsonFileStore(cfg.data_file)
    await init_defaults(store)
    yield store


def _run(ctx: click.Context, op: Callable[[AccountRegistry], Awaitable[T]]) -> T:
    cfg: Settings = ctx.obj

    async def _main() -> T:
        async with open_store(cfg) as store:
            return await op(AccountRegistry(store))

    try:
        return asyncio.run(_main())
    except OmniToolError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _codes_table(views: list[CodeView]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Issuer")
    table.add_column("Account")
    table.add_column("Code", justify="right")
    table.add_column("Left", justify="right")
    table.add_column("ID", style="dim")
    for v in views:
        if not v.ok:
            code, left = "[red]Error[/red]", "-"
        else:
            code = f"[bold]{v.display}[/bold]"
            left = f"[red]{v.remaining}s[/red]" if v.expiring else f"{v.remaining}s"
        table.add_row(v.issuer, v.account, code, left, v.account_id)
    return table


async def _validate_secret(account: Account) -> None:
    """Reject secrets the engine cannot turn into a code."""
    await generate_code(account.secret, digits=account.digits, period=account.period)


@click.group()
@click.option("--data-file", type=click.Path(path_type=Path), default=None, help="JSON data file")
@click.option("--backend", type=click.Choice([b.value for b in StorageBackend]), default=None)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, data_file: Path | None, backend: str | None, verbose: bool) -> None:
    """OmniTool — TOTP authenticator and account registry."""
    overrides: dict[str, Any] = {}
    if data_file is not None:
        overrides["data_file"] = data_file
    if backend is not None:
        overrides["storage_backend"] = backend
    cfg = Settings(**overrides)
    logging.basicConfig(
        level=logging.DEBUG if verbose else cfg.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.obj = cfg


@main.command()
@click.option("--watch", is_flag=True, help="Keep refreshing until Ctrl+C")
@click.option("--search", default="", help="Only accounts whose issuer or label contains TEXT")
@click.pass_context
def codes(ctx: click.Context, watch: bool, search: str) -> None:
    """Show the current code for every account."""
    cfg: Settings = ctx.obj

    async def _once(reg: AccountRegistry) -> list[CodeView]:
        accounts = filter_accounts(await reg.list_accounts(), search)
        return await render_accounts(accounts, warning_threshold=cfg.warning_threshold_s)

    async def _watch(reg: AccountRegistry) -> None:
        with Live(_codes_table([]), console=console, auto_refresh=False) as live:

            def _show(views: list[CodeView]) -> None:
                live.update(_codes_table(views), refresh=True)

            async def _matching() -> list[Account]:
                return filter_accounts(await reg.list_accounts(), search)

            ticker = CodeTicker(
                _matching,
                _show,
                interval=cfg.refresh_interval_s,
                warning_threshold=cfg.warning_threshold_s,
            )
            async with ticker:
                await asyncio.Event().wait()

    if not watch:
        views = _run(ctx, _once)
        if not views:
            console.print("[dim]No matching accounts.[/dim]" if search else "[dim]No accounts yet.[/dim]")
            return
        console.print(_codes_table(views))
        return
    try:
        _run(ctx, _watch)
    except KeyboardInterrupt:
        console.print("\nStopped.")


@main.command()
@click.argument("issuer")
@click.argument("secret")
@click.option("--account", "account_name", default="", help="Account label (defaults to issuer)")
@click.option("--digits", type=int, default=6, show_default=True)
@click.option("--period", type=int, default=30, show_default=True)
@click.pass_context
def add(ctx: click.Context, issuer: str, secret: str, account_name: str, digits: int, period: int) -> None:
    """Add an account from an issuer and Base32 secret."""
    issuer = issuer.strip()
    secret = "".join(secret.split())
    if not issuer or not secret:
        console.print("[red]Issuer and secret are required[/red]")
        sys.exit(1)
    account = Account(
        issuer=issuer,
        account=account_name.strip() or issuer,
        secret=secret,
        digits=digits,
        period=period,
    )

    async def _add(reg: AccountRegistry) -> Account:
        await _validate_secret(account)
        return await reg.add(account)

    added = _run(ctx, _add)
    console.print(f"[green]Added[/green] {added.issuer} ({added.account}) id={added.id}")


@main.command("add-uri")
@click.argument("uri")
@click.pass_context
def add_uri(ctx: click.Context, uri: str) -> None:
    """Add an account from an otpauth:// URI."""

    async def _add(reg: AccountRegistry) -> Account:
        account = parse_uri(uri).to_account()
        await _validate_secret(account)
        return await reg.add(account)

    added = _run(ctx, _add)
    console.print(f"[green]Added[/green] {added.issuer} ({added.account}) id={added.id}")


@main.command()
@click.argument("account_id")
@click.option("--issuer", default=None)
@click.option("--account", "account_name", default=None)
@click.option("--digits", type=int, default=None)
@click.option("--period", type=int, default=None)
@click.pass_context
def update(
    ctx: click.Context,
    account_id: str,
    issuer: str | None,
    account_name: str | None,
    digits: int | None,
    period: int | None,
) -> None:
    """Replace fields of an existing account."""
    fields = {
        k: v
        for k, v in {"issuer": issuer, "account": account_name, "digits": digits, "period": period}.items()
        if v is not None
    }
    if not fields:
        console.print("[yellow]Nothing to update[/yellow]")
        return

    async def _update(reg: AccountRegistry) -> None:
        await reg.update(account_id, fields)

    _run(ctx, _update)
    console.print(f"Updated {account_id}")


@main.command()
@click.argument("account_id")
@click.pass_context
def delete(ctx: click.Context, account_id: str) -> None:
    """Delete an account."""

    async def _delete(reg: AccountRegistry) -> None:
        await reg.delete(account_id)

    _run(ctx, _delete)
    console.print(f"Deleted {account_id}")


@main.command("export")
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_context
def export_cmd(ctx: click.Context, file: Path | None) -> None:
    """Export accounts and settings as JSON."""

    async def _export(reg: AccountRegistry) -> dict[str, Any]:
        return (await reg.export()).dump()

    data = json.dumps(_run(ctx, _export), indent=2, ensure_ascii=False)
    if file is None:
        click.echo(data)
        return
    file.write_text(data, encoding="utf-8")
    console.print(f"Exported to {file}")


@main.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_cmd(ctx: click.Context, file: Path) -> None:
    """Import accounts from an export file. Existing ids are skipped."""
    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        sys.exit(1)

    async def _import(reg: AccountRegistry):
        return await reg.import_(data)

    result = _run(ctx, _import)
    if not result.success:
        console.print(f"[red]Import failed: {result.error}[/red]")
        sys.exit(1)
    console.print(f"[green]Imported {result.imported}[/green], skipped {result.skipped}")


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show effective configuration."""
    cfg: Settings = ctx.obj
    console.print("[bold]OmniTool Status[/bold]")
    console.print(f"  Backend: {cfg.storage_backend}")
    if cfg.storage_backend == StorageBackend.POSTGRES:
        console.print(f"  Database: {cfg.database_url.split('@')[-1]}")
    else:
        console.print(f"  Data file: {cfg.data_file}")
    console.print(f"  Refresh: every {cfg.refresh_interval_s}s")
    console.print(f"  Expiry warning: {cfg.warning_threshold_s}s")


if __name__ == "__main__":
    main()
