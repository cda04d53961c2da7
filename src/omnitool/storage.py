"""Key-value persistence for the three top-level keys.

Backends only have to provide ``get``/``set``/``remove``. Every write
replaces the whole value for a key; there are no transactions and the
last write wins.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from omnitool.models import PasswordOptions

logger = logging.getLogger(__name__)

PASSWORD_OPTIONS = "passwordOptions"
ACCOUNTS = "totpAccounts"
SETTINGS = "appSettings"


class KeyValueStore(Protocol):
    async def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Whole-document JSON file. Writes go through a temp file + rename."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)

    async def get(self, key: str, default: Any = None) -> Any:
        data = await asyncio.to_thread(self._read)
        return data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        def _update() -> None:
            data = self._read()
            data[key] = value
            self._write(data)

        await asyncio.to_thread(_update)

    async def remove(self, key: str) -> None:
        def _update() -> None:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

        await asyncio.to_thread(_update)


# ---------------------------------------------------------------------------
# Typed accessors
# ---------------------------------------------------------------------------


async def get_password_options(store: KeyValueStore) -> PasswordOptions:
    raw = await store.get(PASSWORD_OPTIONS)
    return PasswordOptions.model_validate(raw) if raw else PasswordOptions()


async def save_password_options(store: KeyValueStore, options: PasswordOptions) -> None:
    await store.set(PASSWORD_OPTIONS, options.model_dump())


async def get_settings(store: KeyValueStore) -> dict[str, Any]:
    return await store.get(SETTINGS, {})


async def save_settings(store: KeyValueStore, settings: dict[str, Any]) -> None:
    await store.set(SETTINGS, settings)


async def init_defaults(store: KeyValueStore) -> list[str]:
    """Seed any missing top-level key with its default. Returns the keys written."""
    defaults: dict[str, Any] = {
        PASSWORD_OPTIONS: PasswordOptions().model_dump(),
        ACCOUNTS: [],
        SETTINGS: {},
    }
    written = []
    for key, value in defaults.items():
        if await store.get(key) is None:
            await store.set(key, value)
            written.append(key)
    if written:
        logger.info("Initialized storage defaults: %s", ", ".join(written))
    return written
