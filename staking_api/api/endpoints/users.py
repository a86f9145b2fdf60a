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
from staking_api.users.schemas import (
    UserResponse,
    UserSignupRequest,
    UserUpdateRequest,
)
from staking_api.users.service import UserService


router = APIRouter()

USER_FILTERS = ("id", "email", "address", "username", "authType", "role")


@router.post(
    "/signup",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Sign up or log in",
    description=(
        "Create a user for the given auth type. When a user already owns "
        "the address, that user is returned as a login."
    ),
)
@api_handler("User created successfully")
async def signup(
    request: UserSignupRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[UserResponse]:
    user, created = await UserService(session).signup(request)
    if not created:
        return HandlerResult(
            data=user, message="User logged in successfully"
        )
    return HandlerResult(data=user)


@router.put(
    "/update",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Update user profile",
)
@api_handler("User profile updated successfully")
async def update_profile(
    request: UserUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[UserResponse]:
    user = await UserService(session).update_profile(request)
    return HandlerResult(data=user)


@router.get(
    "",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Get users",
    description="Get a page of users, optionally filtered.",
    dependencies=[Depends(allowed_query_params(*USER_FILTERS))],
)
@api_handler("Fetched User Details Successfully")
async def get_users(
    id: Optional[str] = Query(None),  # pylint: disable=redefined-builtin
    email: Optional[str] = Query(None),
    address: Optional[str] = Query(None),
    username: Optional[str] = Query(None),
    auth_type: Optional[str] = Query(None, alias="authType"),
    role: Optional[str] = Query(None),
    params: PaginationParams = Depends(get_pagination),
    session: AsyncSession = Depends(get_session),
) -> HandlerResult[list[UserResponse]]:
    """
    Get users matching the given filters.

    Args:
        id: User UUID
        email: Exact email
        address: Exact wallet address
        username: Exact username
        auth_type: WALLET, EMAIL or BOTH
        role: USER, MERCHANT or BOTH
        params: Paging and sorting options
        session: Database session

    Returns:
        HandlerResult: Users and pagination info
    """
    users, pagination = await UserService(session).list_users(
        {
            "id": id,
            "email": email,
            "address": address,
            "username": username,
            "auth_type": auth_type,
            "role": role,
        },
        params,
    )
    return HandlerResult(data=users, pagination=pagination)
