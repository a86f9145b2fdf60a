import logging
import math
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.constants import INTERNAL_STAKING_SERVICE, Messages
from staking_api.database import atomic
from staking_api.exceptions import (
    ConflictError,
    NotFoundError,
    StoreError,
    StoreErrorKind,
    ValidationError,
)
from staking_api.retry import safe_query
from staking_api.schemas import PaginationInfo, PaginationParams
from staking_api.stakes.models import Stake, StakeStatus
from staking_api.stakes.repository import StakeRepository
from staking_api.stakes.schemas import (
    CreateStakeRequest,
    StakeResponse,
    UpdateStakeRequest,
)
from staking_api.transactions.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from staking_api.transactions.repository import TransactionRepository
from staking_api.users.service import UserService
from staking_api.utils import (
    build_pagination,
    build_pagination_info,
    parse_enum,
    parse_uuid,
    require_fields,
    utcnow,
)


logger = logging.getLogger(__name__)

REQUIRED_STAKE_FIELDS = (
    "user_id",
    "token_address",
    "token_symbol",
    "amount",
    "duration",
    "apy",
)


class StakeService:
    """Service for opening, changing and listing stakes."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = StakeRepository(session)
        self.transactions = TransactionRepository(session)
        self.users = UserService(session)

    async def create_stake(self, request: CreateStakeRequest) -> StakeResponse:
        """
        Open a stake and record its STAKE transaction in one unit.

        Args:
            request: Stake parameters; ``user_id`` is the wallet address

        Returns:
            StakeResponse: The created stake
        """
        require_fields(request, REQUIRED_STAKE_FIELDS)
        if request.cbv_rate_at_stake is None:
            raise ValidationError("Missing required fields: cbvRateAtStake")

        user = await self.users.require_by_address(request.user_id)
        user_id, owner = user.id, user.public_id

        start_time = utcnow()
        end_time = start_time + timedelta(days=request.duration)
        return_percentage = (
            request.return_percentage
            if request.return_percentage is not None
            else math.floor(request.apy * 100)
        )
        is_eth_stake = (
            request.is_eth_stake
            if request.is_eth_stake is not None
            else request.token_symbol.upper() == "ETH"
        )

        async def write() -> Stake:
            async with atomic(self.session):
                stake = self.repository.add(
                    Stake(
                        user_id=user_id,
                        token_address=request.token_address,
                        token_symbol=request.token_symbol,
                        amount=request.amount,
                        duration=request.duration,
                        start_time=start_time,
                        end_time=end_time,
                        apy=request.apy,
                        is_flexible=request.is_flexible or False,
                        min_duration=request.min_duration or None,
                        pool_id=request.pool_id or None,
                        pool_name=request.pool_name or None,
                        pool_category=request.pool_category or None,
                        cbv_rate_at_stake=request.cbv_rate_at_stake,
                        return_percentage=return_percentage,
                        is_eth_stake=is_eth_stake,
                    )
                )
                self.transactions.add(
                    Transaction(
                        user_id=user_id,
                        type=TransactionType.STAKE,
                        status=TransactionStatus.CONFIRMED,
                        amount=request.amount,
                        token_address=request.token_address,
                        external_tx_hash=request.external_tx_hash or None,
                        external_service=(
                            request.external_service
                            or INTERNAL_STAKING_SERVICE
                        ),
                        gas_used=request.gas_used or None,
                        gas_price=request.gas_price or None,
                        block_number=request.block_number or None,
                    )
                )
            return stake

        try:
            stake = await safe_query(write, session=self.session)
        except StoreError as e:
            if (
                e.kind is StoreErrorKind.CONSTRAINT_VIOLATION
                and request.external_tx_hash
            ):
                raise ConflictError(Messages.DUPLICATE_EXTERNAL_TX) from e
            raise

        logger.info(
            "Created stake %s for user=%s: %s %s for %s days",
            stake.id,
            owner,
            stake.amount,
            stake.token_symbol,
            stake.duration,
        )
        return StakeResponse.from_model(stake, owner)

    async def update_stake(self, request: UpdateStakeRequest) -> StakeResponse:
        """
        Change duration, amount and/or status of a stake.

        A duration change moves ``end_time`` relative to the stored
        ``start_time``. Moving to UNSTAKED records an UNSTAKE transaction
        with the amount and token held before the update, in the same unit.
        Any status value of the enumeration is accepted from any state.
        """
        if not request.stake_id:
            raise ValidationError("Stake ID is required")

        stake_id = parse_uuid(request.stake_id, "stake ID")
        new_status: Optional[StakeStatus] = None
        if request.status is not None:
            new_status = parse_enum(StakeStatus, request.status, "status")

        existing = await safe_query(
            lambda: self.repository.get_by_id(stake_id),
            session=self.session,
        )
        if existing is None:
            raise NotFoundError(Messages.STAKE_NOT_FOUND)

        async def write() -> Stake:
            async with atomic(self.session):
                stake = await self.repository.get_by_id(stake_id)
                if stake is None:
                    raise NotFoundError(Messages.STAKE_NOT_FOUND)

                previous_amount = stake.amount
                previous_token = stake.token_address

                if request.duration is not None:
                    stake.duration = request.duration
                    stake.end_time = stake.start_time + timedelta(
                        days=request.duration
                    )
                if request.amount is not None:
                    stake.amount = request.amount
                if new_status is not None:
                    stake.status = new_status
                stake.updated_at = utcnow()

                if new_status is StakeStatus.UNSTAKED:
                    self.transactions.add(
                        Transaction(
                            user_id=stake.user_id,
                            type=TransactionType.UNSTAKE,
                            status=TransactionStatus.CONFIRMED,
                            amount=previous_amount,
                            token_address=previous_token,
                            external_service=INTERNAL_STAKING_SERVICE,
                        )
                    )
            return stake

        stake = await safe_query(write, session=self.session)

        owner = await safe_query(
            lambda: self.users.repository.get_by_id(stake.user_id),
            session=self.session,
        )
        logger.info("Updated stake %s (status=%s)", stake.id, stake.status)
        return StakeResponse.from_model(
            stake, owner.public_id if owner else str(stake.user_id)
        )

    async def list_stakes(
        self,
        params: PaginationParams,
        user_address: Optional[str] = None,
        status: Optional[str] = None,
    ) -> tuple[list[StakeResponse], PaginationInfo]:
        """
        Get a page of stakes, optionally for one wallet address.

        An address with no user row yields an empty page, not an error.
        """
        pagination = build_pagination(params, Stake.model_fields)
        filters: dict[str, Any] = {}

        if user_address:
            user = await self.users.find_by_address(user_address)
            if user is None:
                return [], PaginationInfo(
                    total_items=0, total_pages=0, current_page=params.page
                )
            filters["user_id"] = user.id

        if status:
            filters["status"] = parse_enum(StakeStatus, status, "status")

        rows, total = await safe_query(
            lambda: self.repository.list_stakes(filters, pagination),
            session=self.session,
        )
        return (
            [StakeResponse.from_model(stake, owner) for stake, owner in rows],
            build_pagination_info(total, params),
        )
