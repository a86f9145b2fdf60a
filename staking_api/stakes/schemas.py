from datetime import datetime
from typing import Optional

from staking_api.schemas import ApiModel
from staking_api.stakes.models import Stake, StakeStatus


class CreateStakeRequest(ApiModel):
    """Request model for opening a stake; ``user_id`` is the address."""

    user_id: Optional[str] = None
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    amount: Optional[float] = None
    duration: Optional[int] = None  # days
    apy: Optional[float] = None
    is_flexible: Optional[bool] = None
    min_duration: Optional[int] = None
    pool_id: Optional[int] = None
    pool_name: Optional[str] = None
    pool_category: Optional[str] = None
    cbv_rate_at_stake: Optional[float] = None
    return_percentage: Optional[int] = None
    is_eth_stake: Optional[bool] = None
    external_tx_hash: Optional[str] = None
    external_service: Optional[str] = None
    gas_used: Optional[float] = None
    gas_price: Optional[float] = None
    block_number: Optional[int] = None


class UpdateStakeRequest(ApiModel):
    """Request model for changing a stake."""

    stake_id: Optional[str] = None
    duration: Optional[int] = None
    amount: Optional[float] = None
    status: Optional[str] = None


class StakeResponse(ApiModel):
    """Stake DTO; ``user_id`` carries the owner's address."""

    id: str
    user_id: str
    token_address: str
    token_symbol: str
    amount: float
    duration: int
    start_time: datetime
    end_time: datetime
    apy: float
    status: StakeStatus
    is_flexible: bool
    min_duration: Optional[int] = None
    pool_id: Optional[int] = None
    pool_name: Optional[str] = None
    pool_category: Optional[str] = None
    cbv_rate_at_stake: Optional[float] = None
    return_percentage: Optional[int] = None
    is_eth_stake: Optional[bool] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, stake: Stake, owner: str) -> "StakeResponse":
        return cls(
            id=str(stake.id),
            user_id=owner,
            token_address=stake.token_address,
            token_symbol=stake.token_symbol,
            amount=stake.amount,
            duration=stake.duration,
            start_time=stake.start_time,
            end_time=stake.end_time,
            apy=stake.apy,
            status=stake.status,
            is_flexible=stake.is_flexible,
            min_duration=stake.min_duration or None,
            pool_id=stake.pool_id or None,
            pool_name=stake.pool_name or None,
            pool_category=stake.pool_category or None,
            cbv_rate_at_stake=stake.cbv_rate_at_stake,
            return_percentage=stake.return_percentage,
            is_eth_stake=stake.is_eth_stake,
            created_at=stake.created_at,
            updated_at=stake.updated_at,
        )
