"""
Base Service class that all domain services inherit from.
Holds the request's database session and a bound logger.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Type, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import NotFoundError, ValidationError
from src.data.models import User

logger = structlog.get_logger()

T = TypeVar("T")


class BaseService:
    """
    Base class for services in the Relief Ledger system.

    A service method that writes runs inside ``transaction()``: every change
    it stages commits together or not at all, the same way a write batch does.
    """

    name: str = "service"

    def __init__(self, session: AsyncSession):
        self.session = session
        self._logger = logger.bind(service=self.name)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit on success, roll back and re-raise on any error."""
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _get_or_404(self, model: Type[T], entity_id: str, label: str) -> T:
        instance = await self.session.get(model, entity_id)
        if instance is None:
            raise NotFoundError(f"{label} not found.", meta={"id": entity_id})
        return instance

    async def _require_user(self, user_id: Optional[str], message: str = "Admin user not found for logging.") -> User:
        """Resolve the acting user, as every audited action needs one."""
        if not user_id:
            raise ValidationError(
                "Could not identify the administrator performing this action."
            )
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(message, meta={"user_id": user_id})
        return user
