import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from staking_api.constants import INTERNAL_STAKING_SERVICE
from staking_api.exceptions import ConflictError, NotFoundError, ValidationError
from staking_api.schemas import PaginationParams
from staking_api.stakes.models import Stake, StakeStatus
from staking_api.stakes.schemas import CreateStakeRequest, UpdateStakeRequest
from staking_api.stakes.service import StakeService
from staking_api.transactions.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from tests.conftest import OTHER_ADDRESS, TEST_ADDRESS


TOKEN_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"


def stake_request(**overrides) -> CreateStakeRequest:
    fields = {
        "user_id": TEST_ADDRESS,
        "token_address": TOKEN_ADDRESS,
        "token_symbol": "ETH",
        "amount": 2.5,
        "duration": 30,
        "apy": 12.5,
        "cbv_rate_at_stake": 1.2,
    }
    fields.update(overrides)
    return CreateStakeRequest(**fields)


async def count_rows(session, model, *conditions) -> int:
    result = await session.execute(
        select(func.count()).select_from(model).where(*conditions)
    )
    return result.scalar_one()


class TestCreateStake:
    """Tests for opening stakes."""

    @pytest.mark.asyncio
    async def test_creates_stake_with_derived_fields(
        self, session, create_user
    ):
        # Arrange
        await create_user(session)
        service = StakeService(session)

        # Act
        stake = await service.create_stake(stake_request())

        # Assert
        assert stake.user_id == TEST_ADDRESS
        assert stake.status is StakeStatus.ACTIVE
        assert stake.end_time - stake.start_time == timedelta(days=30)
        assert stake.return_percentage == 1250
        assert stake.is_eth_stake is True
        assert stake.is_flexible is False

    @pytest.mark.asyncio
    async def test_records_confirmed_stake_transaction(
        self, session, create_user
    ):
        # Arrange
        user = await create_user(session)

        # Act
        await StakeService(session).create_stake(
            stake_request(external_tx_hash="0xhash", gas_used=21000)
        )

        # Assert
        result = await session.execute(
            select(Transaction).where(Transaction.user_id == user.id)
        )
        transactions = result.scalars().all()
        assert len(transactions) == 1
        transaction = transactions[0]
        assert transaction.type is TransactionType.STAKE
        assert transaction.status is TransactionStatus.CONFIRMED
        assert transaction.amount == 2.5
        assert transaction.token_address == TOKEN_ADDRESS
        assert transaction.external_tx_hash == "0xhash"
        assert transaction.external_service == INTERNAL_STAKING_SERVICE
        assert transaction.gas_used == 21000

    @pytest.mark.asyncio
    async def test_explicit_defaults_are_kept(self, session, create_user):
        # Arrange
        await create_user(session)

        # Act
        stake = await StakeService(session).create_stake(
            stake_request(
                token_symbol="usdc",
                return_percentage=900,
                is_eth_stake=True,
                cbv_rate_at_stake=0,
            )
        )

        # Assert
        assert stake.return_percentage == 900
        assert stake.is_eth_stake is True
        assert stake.cbv_rate_at_stake == 0

    @pytest.mark.asyncio
    async def test_non_eth_symbol(self, session, create_user):
        await create_user(session)

        stake = await StakeService(session).create_stake(
            stake_request(token_symbol="USDC")
        )

        assert stake.is_eth_stake is False

    @pytest.mark.asyncio
    async def test_missing_fields_are_named(self, session):
        with pytest.raises(ValidationError) as exc_info:
            await StakeService(session).create_stake(
                stake_request(token_symbol=None, apy=None)
            )

        assert str(exc_info.value) == (
            "Missing required fields: tokenSymbol, apy"
        )

    @pytest.mark.asyncio
    async def test_missing_cbv_rate(self, session, create_user):
        await create_user(session)

        with pytest.raises(ValidationError, match="cbvRateAtStake"):
            await StakeService(session).create_stake(
                stake_request(cbv_rate_at_stake=None)
            )

    @pytest.mark.asyncio
    async def test_unknown_user(self, session):
        with pytest.raises(NotFoundError, match="User not found"):
            await StakeService(session).create_stake(
                stake_request(user_id=OTHER_ADDRESS)
            )

    @pytest.mark.asyncio
    async def test_duplicate_hash_leaves_no_partial_rows(
        self, session, create_user
    ):
        # Arrange
        await create_user(session)
        service = StakeService(session)
        await service.create_stake(stake_request(external_tx_hash="0xdup"))

        # Act
        with pytest.raises(ConflictError):
            await service.create_stake(
                stake_request(external_tx_hash="0xdup", amount=9.0)
            )

        # Assert
        assert await count_rows(session, Stake) == 1
        assert await count_rows(session, Stake, Stake.amount == 9.0) == 0
        assert await count_rows(session, Transaction) == 1


class TestUpdateStake:
    """Tests for changing stakes."""

    @pytest.mark.asyncio
    async def test_duration_change_moves_end_time(
        self, session, create_user
    ):
        # Arrange
        await create_user(session)
        service = StakeService(session)
        created = await service.create_stake(stake_request())

        # Act
        updated = await service.update_stake(
            UpdateStakeRequest(stake_id=created.id, duration=90)
        )

        # Assert
        assert updated.duration == 90
        assert updated.end_time - updated.start_time == timedelta(days=90)
        assert updated.start_time == created.start_time

    @pytest.mark.asyncio
    async def test_unstake_records_one_companion(self, session, create_user):
        # Arrange
        user = await create_user(session)
        service = StakeService(session)
        created = await service.create_stake(stake_request(amount=4.0))

        # Act
        updated = await service.update_stake(
            UpdateStakeRequest(
                stake_id=created.id, status="UNSTAKED", amount=1.0
            )
        )

        # Assert
        assert updated.status is StakeStatus.UNSTAKED
        assert updated.amount == 1.0
        result = await session.execute(
            select(Transaction).where(
                Transaction.user_id == user.id,
                Transaction.type == TransactionType.UNSTAKE,
            )
        )
        unstakes = result.scalars().all()
        assert len(unstakes) == 1
        assert unstakes[0].status is TransactionStatus.CONFIRMED
        assert unstakes[0].amount == 4.0
        assert unstakes[0].token_address == TOKEN_ADDRESS

    @pytest.mark.asyncio
    async def test_other_status_records_no_companion(
        self, session, create_user
    ):
        # Arrange
        await create_user(session)
        service = StakeService(session)
        created = await service.create_stake(stake_request())

        # Act
        await service.update_stake(
            UpdateStakeRequest(stake_id=created.id, status="COMPLETED")
        )

        # Assert
        assert (
            await count_rows(
                session,
                Transaction,
                Transaction.type == TransactionType.UNSTAKE,
            )
            == 0
        )

    @pytest.mark.asyncio
    async def test_missing_stake_id(self, session):
        with pytest.raises(ValidationError, match="Stake ID is required"):
            await StakeService(session).update_stake(UpdateStakeRequest())

    @pytest.mark.asyncio
    async def test_unknown_stake(self, session):
        with pytest.raises(NotFoundError, match="Stake not found"):
            await StakeService(session).update_stake(
                UpdateStakeRequest(stake_id=str(uuid.uuid4()), amount=1.0)
            )

    @pytest.mark.asyncio
    async def test_invalid_status(self, session, create_user):
        await create_user(session)
        service = StakeService(session)
        created = await service.create_stake(stake_request())

        with pytest.raises(ValidationError, match="Invalid status"):
            await service.update_stake(
                UpdateStakeRequest(stake_id=created.id, status="PAUSED")
            )


class TestListStakes:
    """Tests for stake listing."""

    @pytest.mark.asyncio
    async def test_lists_stakes_for_address(self, session, create_user):
        # Arrange
        await create_user(session)
        await create_user(session, address=OTHER_ADDRESS)
        service = StakeService(session)
        await service.create_stake(stake_request())
        await service.create_stake(stake_request(amount=1.0))
        await service.create_stake(stake_request(user_id=OTHER_ADDRESS))

        # Act
        stakes, pagination = await service.list_stakes(
            PaginationParams(limit=1), user_address=TEST_ADDRESS
        )

        # Assert
        assert len(stakes) == 1
        assert stakes[0].user_id == TEST_ADDRESS
        assert pagination.total_items == 2
        assert pagination.total_pages == 2
        assert pagination.current_page == 1

    @pytest.mark.asyncio
    async def test_unknown_address_gives_empty_page(self, session):
        stakes, pagination = await StakeService(session).list_stakes(
            PaginationParams(page=2), user_address=OTHER_ADDRESS
        )

        assert stakes == []
        assert pagination.total_items == 0
        assert pagination.total_pages == 0
        assert pagination.current_page == 2

    @pytest.mark.asyncio
    async def test_sort_by_amount_ascending(self, session, create_user):
        # Arrange
        await create_user(session)
        service = StakeService(session)
        for amount in (3.0, 1.0, 2.0):
            await service.create_stake(stake_request(amount=amount))

        # Act
        stakes, _ = await service.list_stakes(
            PaginationParams(sort_by="amount", order="asc")
        )

        # Assert
        assert [stake.amount for stake in stakes] == [1.0, 2.0, 3.0]
