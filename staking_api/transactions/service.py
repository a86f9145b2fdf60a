import logging
from collections.abc import Callable
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.constants import Messages
from staking_api.database import atomic
from staking_api.exceptions import (
    ConflictError,
    StoreError,
    StoreErrorKind,
)
from staking_api.retry import safe_query
from staking_api.schemas import PaginationInfo, PaginationParams
from staking_api.transactions.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from staking_api.transactions.repository import TransactionRepository
from staking_api.transactions.schemas import (
    CreateExternalTransactionRequest,
    CreateSwapRequest,
    CreateTransferRequest,
    TransactionResponse,
)
from staking_api.users.service import UserService
from staking_api.utils import (
    build_pagination,
    build_pagination_info,
    parse_enum,
    parse_uuid,
    require_fields,
)


logger = logging.getLogger(__name__)


class TransactionService:
    """Service for recording and listing wallet transactions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = TransactionRepository(session)
        self.users = UserService(session)

    async def create_swap(
        self, request: CreateSwapRequest
    ) -> TransactionResponse:
        """Record a pending token swap."""
        require_fields(
            request,
            (
                "user_id",
                "from_token",
                "to_token",
                "from_amount",
                "to_amount",
                "swap_rate",
            ),
        )
        user = await self.users.require_by_address(request.user_id)
        user_id, owner = user.id, user.public_id

        transaction = await self._insert(
            lambda: Transaction(
                user_id=user_id,
                type=TransactionType.SWAP,
                status=TransactionStatus.PENDING,
                from_token=request.from_token,
                to_token=request.to_token,
                from_amount=request.from_amount,
                to_amount=request.to_amount,
                swap_rate=request.swap_rate,
                external_tx_hash=request.external_tx_hash or None,
                external_service=request.external_service or None,
            ),
            request.external_tx_hash,
        )
        return TransactionResponse.from_model(transaction, owner)

    async def create_transfer(
        self, request: CreateTransferRequest
    ) -> TransactionResponse:
        """Record a pending token transfer."""
        require_fields(
            request, ("user_id", "recipient", "amount", "token_address")
        )
        user = await self.users.require_by_address(request.user_id)
        user_id, owner = user.id, user.public_id

        transaction = await self._insert(
            lambda: Transaction(
                user_id=user_id,
                type=TransactionType.TRANSFER,
                status=TransactionStatus.PENDING,
                recipient=request.recipient,
                amount=request.amount,
                token_address=request.token_address,
                external_tx_hash=request.external_tx_hash or None,
                external_service=request.external_service or None,
            ),
            request.external_tx_hash,
        )
        return TransactionResponse.from_model(transaction, owner)

    async def create_external(
        self, request: CreateExternalTransactionRequest
    ) -> TransactionResponse:
        """
        Record a transaction already confirmed by an outside service.

        The hash lookup before the insert only fails fast; the unique
        constraint on ``external_tx_hash`` decides concurrent duplicates,
        which surface with the same error. The stored status is always
        CONFIRMED.
        """
        require_fields(
            request,
            ("user_id", "type", "external_tx_hash", "external_service"),
        )
        tx_type = parse_enum(TransactionType, request.type, "type")

        user = await self.users.require_by_address(request.user_id)
        user_id, owner = user.id, user.public_id

        existing = await safe_query(
            lambda: self.repository.get_by_external_hash(
                request.external_tx_hash
            ),
            session=self.session,
        )
        if existing is not None:
            raise ConflictError(Messages.DUPLICATE_EXTERNAL_TX)

        transaction = await self._insert(
            lambda: Transaction(
                user_id=user_id,
                type=tx_type,
                status=TransactionStatus.CONFIRMED,
                from_token=request.from_token or None,
                to_token=request.to_token or None,
                from_amount=request.from_amount or None,
                to_amount=request.to_amount or None,
                recipient=request.recipient or None,
                amount=request.amount or None,
                token_address=request.token_address or None,
                external_tx_hash=request.external_tx_hash,
                external_service=request.external_service,
                gas_used=request.gas_used or None,
                gas_price=request.gas_price or None,
                block_number=request.block_number or None,
            ),
            request.external_tx_hash,
        )
        logger.info(
            "Recorded external %s transaction %s from %s",
            tx_type.value,
            transaction.external_tx_hash,
            transaction.external_service,
        )
        return TransactionResponse.from_model(transaction, owner)

    async def list_transactions(
        self,
        params: PaginationParams,
        user_address: Optional[str] = None,
        tx_type: Optional[str] = None,
        status: Optional[str] = None,
        external_service: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> tuple[list[TransactionResponse], PaginationInfo]:
        """
        Get a page of transactions matching the given filters.

        An address with no user row yields an empty page, not an error.
        """
        pagination = build_pagination(params, Transaction.model_fields)
        filters: dict[str, Any] = {}

        if user_address:
            user = await self.users.find_by_address(user_address)
            if user is None:
                return [], PaginationInfo(
                    total_items=0, total_pages=0, current_page=params.page
                )
            filters["user_id"] = user.id

        if transaction_id:
            filters["id"] = parse_uuid(transaction_id, "transaction ID")
        if tx_type:
            filters["type"] = parse_enum(TransactionType, tx_type, "type")
        if status:
            filters["status"] = parse_enum(
                TransactionStatus, status, "status"
            )
        if external_service:
            filters["external_service"] = external_service

        rows, total = await safe_query(
            lambda: self.repository.list_transactions(filters, pagination),
            session=self.session,
        )
        return (
            [
                TransactionResponse.from_model(transaction, owner)
                for transaction, owner in rows
            ],
            build_pagination_info(total, params),
        )

    async def _insert(
        self,
        build: Callable[[], Transaction],
        external_tx_hash: Optional[str],
    ) -> Transaction:
        """Insert one transaction; a reused external hash is a conflict."""

        async def write() -> Transaction:
            async with atomic(self.session):
                transaction = self.repository.add(build())
            return transaction

        try:
            return await safe_query(write, session=self.session)
        except StoreError as e:
            if (
                e.kind is StoreErrorKind.CONSTRAINT_VIOLATION
                and external_tx_hash
            ):
                raise ConflictError(Messages.DUPLICATE_EXTERNAL_TX) from e
            raise

