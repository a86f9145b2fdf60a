import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from staking_api.utils import utcnow


class TransactionType(str, Enum):
    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"
    SWAP = "SWAP"
    TRANSFER = "TRANSFER"
    EXTERNAL_TRANSFER = "EXTERNAL_TRANSFER"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class Transaction(SQLModel, table=True):
    """
    Wallet activity record.

    Which payload columns are filled depends on ``type``: swaps use the
    from/to token columns, transfers use recipient/amount/token_address,
    and chain-sourced rows carry the external hash and gas columns.
    """

    __tablename__ = "transactions"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    type: TransactionType = Field(index=True)
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING, index=True
    )

    # Swap
    from_token: Optional[str] = Field(default=None)
    to_token: Optional[str] = Field(default=None)
    from_amount: Optional[float] = Field(default=None)
    to_amount: Optional[float] = Field(default=None)
    swap_rate: Optional[float] = Field(default=None)

    # Transfer / stake
    recipient: Optional[str] = Field(default=None)
    amount: Optional[float] = Field(default=None)
    token_address: Optional[str] = Field(default=None)

    # Chain metadata
    external_tx_hash: Optional[str] = Field(
        default=None, unique=True, index=True
    )
    external_service: Optional[str] = Field(default=None, index=True)
    gas_used: Optional[float] = Field(default=None)
    gas_price: Optional[float] = Field(default=None)
    block_number: Optional[int] = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True)
    )
