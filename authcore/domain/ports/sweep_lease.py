from typing import Protocol


class SweepLeasePort(Protocol):
    async def acquire(self, owner: str) -> bool:
        """Try to take the lease for one sweep. False if someone else holds it."""

    async def release(self, owner: str) -> None:
        """Release the lease, only if `owner` still holds it."""
