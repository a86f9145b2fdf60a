"""
Wallet transactions: swaps, transfers, stake audit rows and chain imports.
"""

from staking_api.transactions.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from staking_api.transactions.service import TransactionService
