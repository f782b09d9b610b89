"""Homepage slots port for newsroom-cms."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession


class HomepageSlotsPort(Protocol):
    async def occupies(self, session: AsyncSession, article_id: int) -> bool: ...

    async def clear(self, session: AsyncSession, article_id: int) -> bool: ...
