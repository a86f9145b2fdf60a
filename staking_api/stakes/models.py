import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from staking_api.utils import utcnow


class StakeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    UNSTAKED = "UNSTAKED"


class Stake(SQLModel, table=True):
    """A user's position in a staking pool."""

    __tablename__ = "stakes"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    token_address: str
    token_symbol: str
    amount: float
    duration: int  # days
    start_time: datetime = Field(sa_type=DateTime(timezone=True))
    end_time: datetime = Field(sa_type=DateTime(timezone=True))
    apy: float
    status: StakeStatus = Field(default=StakeStatus.ACTIVE, index=True)
    is_flexible: bool = Field(default=False)
    min_duration: Optional[int] = Field(default=None)
    pool_id: Optional[int] = Field(default=None)
    pool_name: Optional[str] = Field(default=None)
    pool_category: Optional[str] = Field(default=None)

    # Values captured from the chain when the stake was opened
    cbv_rate_at_stake: Optional[float] = Field(default=None)
    return_percentage: Optional[int] = Field(default=None)  # basis points
    is_eth_stake: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True)
    )
