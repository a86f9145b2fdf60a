from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.api.dependencies import allowed_query_params, get_pagination
from staking_api.api.handler import api_handler
from staking_api.database import get_session
from staking_api.exceptions import NotFoundError
from staking_api.schemas import (
    HandlerResult,
    PaginationParams,
    ResponseEnvelope,
)
from staking_api.transactions.schemas import (
    CreateExternalTransactionRequest,
    CreateSwapRequest,
    CreateTransferRequest,
    TransactionResponse,
)
from staking_api.transactions.service import TransactionService


swap_router = APIRouter()
transfer_router = APIRouter()
router = APIRouter()

USER_ID_QUERY = Query(None, alias="userId", description="Wallet address")


@swap_router.post(
    "/create",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Create swap transaction",
)
@api_handler("Swap transaction created successfully")
async def create_swap(
    request: CreateSwapRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[TransactionResponse]:
    transaction = await TransactionService(session).create_swap(request)
    return HandlerResult(data=transaction)


@transfer_router.post(
    "/create",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Create transfer transaction",
)
@api_handler("Transfer transaction created successfully")
async def create_transfer(
    request: CreateTransferRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[TransactionResponse]:
    transaction = await TransactionService(session).create_transfer(request)
    return HandlerResult(data=transaction)


@router.post(
    "/external",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Record external transaction",
    description=(
        "Record a transaction confirmed by an outside service. "
        "Each externalTxHash is accepted once."
    ),
)
@api_handler("External transaction recorded successfully")
async def create_external_transaction(
    request: CreateExternalTransactionRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[TransactionResponse]:
    transaction = await TransactionService(session).create_external(request)
    return HandlerResult(data=transaction)


@router.get(
    "/list",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="List transactions",
    dependencies=[
        Depends(
            allowed_query_params(
                "userId", "type", "status", "externalService"
            )
        )
    ],
)
@api_handler("Transactions retrieved successfully")
async def list_transactions(
    user_id: Optional[str] = USER_ID_QUERY,
    tx_type: Optional[str] = Query(None, alias="type"),
    tx_status: Optional[str] = Query(None, alias="status"),
    external_service: Optional[str] = Query(None, alias="externalService"),
    params: PaginationParams = Depends(get_pagination),
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[list[TransactionResponse]]:
    """
    Get a page of transactions.

    Args:
        user_id: Wallet address of the owner
        tx_type: STAKE, UNSTAKE, SWAP, TRANSFER or EXTERNAL_TRANSFER
        tx_status: PENDING, CONFIRMED or FAILED
        external_service: Name of the reporting service
        params: Paging and sorting options
        session: Database session

    Returns:
        HandlerResult: Transactions and pagination info
    """
    transactions, pagination = await TransactionService(
        session
    ).list_transactions(
        params,
        user_address=user_id,
        tx_type=tx_type,
        status=tx_status,
        external_service=external_service,
    )
    return HandlerResult(data=transactions, pagination=pagination)


@router.get(
    "",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Get transactions",
    description="Get transactions by id and/or owner address.",
    dependencies=[Depends(allowed_query_params("id", "userId"))],
)
@api_handler("Transactions retrieved successfully")
async def get_transactions(
    id: Optional[str] = Query(None),  # pylint: disable=redefined-builtin
    user_id: Optional[str] = USER_ID_QUERY,
    params: PaginationParams = Depends(get_pagination),
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[list[TransactionResponse]]:
    transactions, pagination = await TransactionService(
        session
    ).list_transactions(params, user_address=user_id, transaction_id=id)
    if id and not transactions:
        raise NotFoundError("No transaction found with this ID.")
    return HandlerResult(data=transactions, pagination=pagination)
