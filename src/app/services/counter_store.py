from abc import ABC, abstractmethod
from typing import Optional


class CounterStoreError(Exception):
    """Raised by counter store adapters when the backing store fails or times out"""


class ICounterStore(ABC):
    """
    Counter store interface - atomic per-key counters with expiry.

    Every operation is a single round trip to the store so concurrent
    callers incrementing the same key never lose an increment.
    """

    @abstractmethod
    async def increment_with_expiry(self, key: str, window_seconds: int) -> int:
        """
        Increment the counter at ``key`` (creating it at 1) and make sure it
        expires ``window_seconds`` after it was created.

        Returns:
            The counter value after the increment
        """
        pass

    @abstractmethod
    async def get_remaining_ttl(self, key: str) -> int:
        """Seconds until ``key`` expires; -2 if absent, -1 if it has no expiry"""
        pass

    @abstractmethod
    async def peek(self, key: str) -> Optional[int]:
        """Current counter value without incrementing or touching the expiry"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete the counter; True if it existed"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Health probe"""
        pass

    async def close(self) -> None:
        """Release connections held by the store"""
        pass
