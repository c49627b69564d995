"""
Keyed Locks

Per-key asyncio mutual exclusion. Each key gets its own lock, created on
first use and dropped when the last holder or waiter leaves, so the map
only holds keys that are in use.

Used to serialize reviews of the same (user, card) pair and to guard
against a second card generation for the same (user, card set) while one
is still running.

Usage:
    locks = KeyedLock()

    async with locks.hold((user_id, card_id)):
        ...  # one coroutine per key at a time

    async with locks.hold_or_fail((user_id, card_set_id), "Generation already running"):
        ...  # raises ConflictError if the key is taken
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

from intellicard.middleware.error_handling import ConflictError


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLock:
    """Map of key → asyncio.Lock with reference-counted cleanup."""

    def __init__(self):
        self._entries: dict[Hashable, _Entry] = {}

    def is_held(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)

    def _checkout(self, key: Hashable) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        entry.users -= 1
        if entry.users == 0:
            del self._entries[key]

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Wait for the key, hold it for the block, release on exit."""
        entry = self._checkout(key)
        try:
            async with entry.lock:
                yield
        finally:
            self._checkin(key, entry)

    @asynccontextmanager
    async def hold_or_fail(
        self, key: Hashable, message: str = "Operation already in progress"
    ) -> AsyncIterator[None]:
        """
        Hold the key without waiting.

        Raises:
            ConflictError: If another holder has the key
        """
        if self.is_held(key):
            raise ConflictError(message)
        async with self.hold(key):
            yield
