import logging
from typing import Any, Optional

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.schemas import PaginationQuery
from staking_api.transactions.models import Transaction
from staking_api.users.models import User


logger = logging.getLogger(__name__)


class TransactionRepository:
    """Repository for transaction database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, transaction: Transaction) -> Transaction:
        """Stage a transaction; the caller's unit of work commits it."""
        self.session.add(transaction)
        logger.debug(
            "Staged %s transaction for user=%s",
            transaction.type.value,
            transaction.user_id,
        )
        return transaction

    async def get_by_external_hash(
        self, external_tx_hash: str
    ) -> Optional[Transaction]:
        result = await self.session.execute(
            select(Transaction).where(
                Transaction.external_tx_hash == external_tx_hash
            )
        )
        return result.scalars().first()

    async def list_transactions(
        self, filters: dict[str, Any], pagination: PaginationQuery
    ) -> tuple[list[tuple[Transaction, str]], int]:
        """
        Get transactions with their owner's public identifier.

        Args:
            filters: Column name to required value
            pagination: Offset, limit and ordering

        Returns:
            Tuple of (transaction, owner) pairs and the total match count
        """
        conditions = [
            getattr(Transaction, name) == value
            for name, value in filters.items()
        ]

        query = (
            select(Transaction, User)
            .join(User, Transaction.user_id == User.id)
            .where(*conditions)
        )
        for field, order in pagination.order_by.items():
            column = getattr(Transaction, field)
            query = query.order_by(
                desc(column) if order == "desc" else asc(column)
            )
        query = query.offset(pagination.skip).limit(pagination.take)

        result = await self.session.execute(query)
        rows = [(tx, user.public_id) for tx, user in result.all()]

        count_result = await self.session.execute(
            select(func.count()).select_from(Transaction).where(*conditions)
        )
        return rows, count_result.scalar_one()
