from __future__ import annotations

from typing import Optional, Protocol

from authcore.domain.entities import UserRecord


class UserDirectoryPort(Protocol):
    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        """Return the user (with its notification address) or None."""
