"""
Unit of Work: one session per repository call with commit/rollback at the boundary.
"""

from typing import Callable, Optional
from sqlmodel.ext.asyncio.session import AsyncSession


class UnitOfWork:
    """Opens a session from a factory; commits on clean exit, rolls back on error."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        """Initialize UnitOfWork with the session factory of a live engine."""
        if session_factory is None:
            raise ValueError("Session factory must be provided.")

        self.session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    async def commit(self) -> None:
        """Commit all changes."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback all changes."""
        await self.session.rollback()

    async def flush(self) -> None:
        """Flush session (e.g. to get auto-increment IDs)."""
        await self.session.flush()

    async def __aenter__(self):
        self.session = self.session_factory()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                await self.rollback()
            else:
                await self.commit()
        finally:
            await self.session.close()
