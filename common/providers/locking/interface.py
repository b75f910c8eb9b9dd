from abc import ABC, abstractmethod
from typing import Optional


class DistributedLockInterface(ABC):
    """Interface for distributed lock providers."""

    @abstractmethod
    async def connect(self) -> bool:
        """Open the backing connection. Returns False if unavailable."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backing connection."""
        pass

    @abstractmethod
    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        """
        Acquire a distributed lock for a resource.

        Args:
            resource_key: The resource to lock (e.g., "billing:nightly_sweep")
            timeout_seconds: Lock expiration time in seconds

        Returns:
            Lock token if acquired, None otherwise
        """
        pass

    @abstractmethod
    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        """
        Release a distributed lock.

        Args:
            resource_key: The locked resource
            lock_token: The token received when acquiring the lock

        Returns:
            True if released, False if token doesn't match or lock expired
        """
        pass
