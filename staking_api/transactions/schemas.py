from datetime import datetime
from typing import Optional

from staking_api.schemas import ApiModel
from staking_api.transactions.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
)


class CreateSwapRequest(ApiModel):
    """Request model for a swap; ``user_id`` is the address."""

    user_id: Optional[str] = None
    from_token: Optional[str] = None
    to_token: Optional[str] = None
    from_amount: Optional[float] = None
    to_amount: Optional[float] = None
    swap_rate: Optional[float] = None
    external_tx_hash: Optional[str] = None
    external_service: Optional[str] = None


class CreateTransferRequest(ApiModel):
    """Request model for a transfer; ``user_id`` is the address."""

    user_id: Optional[str] = None
    recipient: Optional[str] = None
    amount: Optional[float] = None
    token_address: Optional[str] = None
    external_tx_hash: Optional[str] = None
    external_service: Optional[str] = None


class CreateExternalTransactionRequest(ApiModel):
    """Request model for a transaction reported by an outside service."""

    user_id: Optional[str] = None
    type: Optional[str] = None
    external_tx_hash: Optional[str] = None
    external_service: Optional[str] = None
    from_token: Optional[str] = None
    to_token: Optional[str] = None
    from_amount: Optional[float] = None
    to_amount: Optional[float] = None
    recipient: Optional[str] = None
    amount: Optional[float] = None
    token_address: Optional[str] = None
    gas_used: Optional[float] = None
    gas_price: Optional[float] = None
    block_number: Optional[int] = None


class TransactionResponse(ApiModel):
    """Transaction DTO; ``user_id`` carries the owner's address."""

    id: str
    user_id: str
    type: TransactionType
    status: TransactionStatus
    from_token: Optional[str] = None
    to_token: Optional[str] = None
    from_amount: Optional[float] = None
    to_amount: Optional[float] = None
    swap_rate: Optional[float] = None
    recipient: Optional[str] = None
    amount: Optional[float] = None
    token_address: Optional[str] = None
    external_tx_hash: Optional[str] = None
    external_service: Optional[str] = None
    gas_used: Optional[float] = None
    gas_price: Optional[float] = None
    block_number: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(
        cls, transaction: Transaction, owner: str
    ) -> "TransactionResponse":
        optional = {
            name: getattr(transaction, name) or None
            for name in (
                "from_token",
                "to_token",
                "from_amount",
                "to_amount",
                "swap_rate",
                "recipient",
                "amount",
                "token_address",
                "external_tx_hash",
                "external_service",
                "gas_used",
                "gas_price",
                "block_number",
            )
        }
        return cls(
            id=str(transaction.id),
            user_id=owner,
            type=transaction.type,
            status=transaction.status,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at,
            **optional,
        )
