import uuid
from typing import Any, Optional

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.schemas import PaginationQuery
from staking_api.stakes.models import Stake
from staking_api.users.models import User


class StakeRepository:
    """Repository for stake database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, stake: Stake) -> Stake:
        """Stage a stake; the caller's unit of work commits it."""
        self.session.add(stake)
        return stake

    async def get_by_id(self, stake_id: uuid.UUID) -> Optional[Stake]:
        return await self.session.get(Stake, stake_id)

    async def list_stakes(
        self, filters: dict[str, Any], pagination: PaginationQuery
    ) -> tuple[list[tuple[Stake, str]], int]:
        """
        Get stakes with their owner's public identifier.

        Args:
            filters: Column name to required value
            pagination: Offset, limit and ordering

        Returns:
            Tuple of (stake, owner) pairs and the total match count
        """
        conditions = [
            getattr(Stake, name) == value for name, value in filters.items()
        ]

        query = (
            select(Stake, User)
            .join(User, Stake.user_id == User.id)
            .where(*conditions)
        )
        for field, order in pagination.order_by.items():
            column = getattr(Stake, field)
            query = query.order_by(
                desc(column) if order == "desc" else asc(column)
            )
        query = query.offset(pagination.skip).limit(pagination.take)

        result = await self.session.execute(query)
        rows = [(stake, user.public_id) for stake, user in result.all()]

        count_result = await self.session.execute(
            select(func.count()).select_from(Stake).where(*conditions)
        )
        return rows, count_result.scalar_one()
