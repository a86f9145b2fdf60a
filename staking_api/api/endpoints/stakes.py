from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.api.dependencies import allowed_query_params, get_pagination
from staking_api.api.handler import api_handler
from staking_api.database import get_session
from staking_api.schemas import (
    HandlerResult,
    PaginationParams,
    ResponseEnvelope,
)
from staking_api.stakes.schemas import (
    CreateStakeRequest,
    StakeResponse,
    UpdateStakeRequest,
)
from staking_api.stakes.service import StakeService


router = APIRouter()

USER_ID_QUERY = Query(None, alias="userId", description="Wallet address")
STATUS_QUERY = Query(
    None,
    alias="status",
    description="ACTIVE, COMPLETED, CANCELLED or UNSTAKED",
)


@router.post(
    "/create",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Create stake",
    description=(
        "Open a stake for the user owning ``userId`` and record the "
        "matching STAKE transaction."
    ),
)
@api_handler("Stake created successfully")
async def create_stake(
    request: CreateStakeRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[StakeResponse]:
    stake = await StakeService(session).create_stake(request)
    return HandlerResult(data=stake)


@router.put(
    "/update",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Update stake",
    description=(
        "Change duration, amount or status of a stake. Moving to UNSTAKED "
        "records an UNSTAKE transaction."
    ),
)
@api_handler("Stake updated successfully")
async def update_stake(
    request: UpdateStakeRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[StakeResponse]:
    stake = await StakeService(session).update_stake(request)
    return HandlerResult(data=stake)


@router.get(
    "/list",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="List stakes",
    dependencies=[Depends(allowed_query_params("userId", "status"))],
)
@api_handler("Stakes retrieved successfully")
async def list_stakes(
    user_id: Optional[str] = USER_ID_QUERY,
    stake_status: Optional[str] = STATUS_QUERY,
    params: PaginationParams = Depends(get_pagination),
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[list[StakeResponse]]:
    """
    Get a page of stakes.

    Args:
        user_id: Wallet address of the owner
        stake_status: Stake status filter
        params: Paging and sorting options
        session: Database session

    Returns:
        HandlerResult: Stakes and pagination info
    """
    stakes, pagination = await StakeService(session).list_stakes(
        params, user_address=user_id, status=stake_status
    )
    if user_id and not stakes:
        return HandlerResult(
            data=stakes,
            message="No stakes found for user",
            pagination=pagination,
        )
    return HandlerResult(data=stakes, pagination=pagination)
