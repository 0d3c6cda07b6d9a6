"""
Base Repository Implementation - Fully Async

Every operation runs in its own session and transaction and returns a
``Result``. Database failures are logged and reported as ``STORE_ERROR``.
"""

from typing import AsyncContextManager, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lawwatch.core.exceptions import StoreError
from lawwatch.core.logging_config import get_logger
from lawwatch.core.result import Result, Ok, Err

T = TypeVar("T")

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class SQLAlchemyBaseRepository:
    """Base repository with common async database operations."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.logger = get_logger(f"{self.__class__.__name__}")

    async def _execute(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> Result[T]:
        """Run ``work`` in a committed session; SQLAlchemy failures become ``Err``."""
        try:
            async with self.session_factory() as session:
                value = await work(session)
            return Ok(value)
        except SQLAlchemyError as e:
            error = StoreError(operation, f"{operation} failed: {e}", cause=e)
            return Err(error.message, error.error_code)
