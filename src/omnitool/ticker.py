"""Periodic re-render of every account's current code."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from omnitool.crypto import HmacFn, hmac_sha1
from omnitool.models import Account
from omnitool.otp.totp import format_for_display, generate_code, seconds_remaining

logger = logging.getLogger(__name__)

ERROR_TEXT = "Error"


@dataclass
class CodeView:
    """What a UI shows for one account at one instant."""

    account_id: str
    issuer: str
    account: str
    code: str
    display: str
    remaining: int
    period: int
    expiring: bool = False

    @property
    def ok(self) -> bool:
        return self.code != ERROR_TEXT


AccountsProvider = Callable[[], Awaitable[Sequence[Account]]]
RenderCallback = Callable[[list[CodeView]], Awaitable[None] | None]


async def render_accounts(
    accounts: Sequence[Account],
    *,
    hmac: HmacFn = hmac_sha1,
    warning_threshold: int = 5,
    now: float | None = None,
) -> list[CodeView]:
    """Compute a CodeView per account. A bad account renders as ``"Error"``."""
    now = time.time() if now is None else now
    views = []
    for acc in accounts:
        digits = acc.digits or 6
        period = acc.period or 30
        try:
            code = await generate_code(
                acc.secret, digits=digits, period=period, timestamp_ms=int(now * 1000), hmac=hmac
            )
            remaining = seconds_remaining(period, now)
            views.append(
                CodeView(
                    account_id=acc.id,
                    issuer=acc.issuer,
                    account=acc.account,
                    code=code,
                    display=format_for_display(code),
                    remaining=remaining,
                    period=period,
                    expiring=remaining <= warning_threshold,
                )
            )
        except Exception:
            logger.warning("Failed to render code for account %s", acc.id, exc_info=True)
            views.append(
                CodeView(
                    account_id=acc.id,
                    issuer=acc.issuer,
                    account=acc.account,
                    code=ERROR_TEXT,
                    display=ERROR_TEXT,
                    remaining=0,
                    period=period,
                )
            )
    return views


class CodeTicker:
    """Re-renders all codes every ``interval`` seconds on an asyncio task.

    ``start()`` and ``stop()`` are both idempotent. The first render
    happens immediately on start.
    """

    def __init__(
        self,
        accounts_provider: AccountsProvider,
        on_render: RenderCallback,
        interval: float = 1.0,
        *,
        hmac: HmacFn = hmac_sha1,
        warning_threshold: int = 5,
    ) -> None:
        self.accounts_provider = accounts_provider
        self.on_render = on_render
        self.interval = interval
        self.hmac = hmac
        self.warning_threshold = warning_threshold
        self._task: asyncio.Task[None] | None = None
        self.renders = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def render_once(self) -> list[CodeView]:
        accounts = await self.accounts_provider()
        views = await render_accounts(
            accounts, hmac=self.hmac, warning_threshold=self.warning_threshold
        )
        result = self.on_render(views)
        if asyncio.iscoroutine(result):
            await result
        self.renders += 1
        return views

    async def _loop(self) -> None:
        while True:
            try:
                await self.render_once()
            except Exception:
                logger.error("Code refresh failed", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.debug("Code ticker started (every %.1fs)", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Code ticker stopped after %d renders", self.renders)

    async def __aenter__(self) -> CodeTicker:
        self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()
