"""Keyed async mutex.

One ``asyncio.Lock`` per key, created on first use and dropped as soon as no
task holds or waits for it, so the table does not grow over the life of a
long-running process.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


@dataclass
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedMutex:
    """Serializes critical sections per key, in arrival order.

    Sections for different keys run concurrently. A section that raises
    still releases its key, so later sections for that key run normally.

    Example:
        mutex = KeyedMutex()
        async with mutex.hold("months/2025-01.json"):
            ...
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def pending_keys(self) -> int:
        """Number of keys with a running or queued section."""
        return len(self._entries)

    def waiters(self, key: str) -> int:
        """Tasks holding or waiting for ``key``."""
        entry = self._entries.get(key)
        return entry.users if entry else 0

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Run the enclosed block exclusively for ``key``.

        Registration happens before the first suspension point, so blocks
        entered in program order acquire the key in that same order.
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]
