"""One asyncio lock per provider id."""

import asyncio


class ProviderLocks:
    """Lazily created per-provider locks.

    Operations on one provider's calendar run one at a time; operations on
    different providers never wait for each other.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, provider_id: str) -> asyncio.Lock:
        lock = self._locks.get(provider_id)
        if lock is None:
            lock = self._locks[provider_id] = asyncio.Lock()
        return lock

    def is_locked(self, provider_id: str) -> bool:
        lock = self._locks.get(provider_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
