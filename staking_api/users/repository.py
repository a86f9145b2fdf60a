import uuid
from typing import Any, Optional

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.schemas import PaginationQuery
from staking_api.users.models import User


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_address(self, address: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.address == address)
        )
        return result.scalars().first()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email)
        )
        return result.scalars().first()

    def add(self, user: User) -> User:
        """Stage a new user; the caller's unit of work commits it."""
        self.session.add(user)
        return user

    async def list_users(
        self, filters: dict[str, Any], pagination: PaginationQuery
    ) -> tuple[list[User], int]:
        """
        Get users matching equality filters.

        Args:
            filters: Column name to required value
            pagination: Offset, limit and ordering

        Returns:
            Tuple of the page of users and the total match count
        """
        conditions = [
            getattr(User, name) == value for name, value in filters.items()
        ]

        query = select(User).where(*conditions)
        for field, order in pagination.order_by.items():
            column = getattr(User, field)
            query = query.order_by(
                desc(column) if order == "desc" else asc(column)
            )
        query = query.offset(pagination.skip).limit(pagination.take)

        result = await self.session.execute(query)
        users = list(result.scalars().all())

        count_result = await self.session.execute(
            select(func.count()).select_from(User).where(*conditions)
        )
        return users, count_result.scalar_one()
