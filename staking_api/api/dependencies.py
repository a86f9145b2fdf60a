from collections.abc import Callable
from typing import Optional

import jwt
from fastapi import Request

from staking_api.config import settings
from staking_api.constants import PAGINATION_QUERY_PARAMS
from staking_api.exceptions import AuthenticationError
from staking_api.schemas import PaginationParams
from staking_api.utils import get_pagination_params, reject_unknown_params


JWT_ALGORITHMS = ["HS256"]


async def verify_auth_token(request: Request) -> Optional[str]:
    """
    Validate the ``token`` cookie and expose its user id.

    Passes every request through unless ``AUTH_REQUIRED`` is set.
    """
    if not settings.AUTH_REQUIRED:
        return None

    token = request.cookies.get("token")
    if not token:
        raise AuthenticationError(detail="Unauthorized")

    secret = (
        settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else ""
    )
    try:
        payload = jwt.decode(token, secret, algorithms=JWT_ALGORITHMS)
    except jwt.PyJWTError as e:
        raise AuthenticationError(detail=f"Invalid token: {e}") from e

    user_id = payload.get("userId")
    if not user_id:
        raise AuthenticationError(detail="Invalid token: missing userId")

    request.state.user_id = user_id
    return user_id


def allowed_query_params(*names: str) -> Callable[[Request], None]:
    """Dependency rejecting query parameters outside ``names`` and paging."""
    allowed = (*PAGINATION_QUERY_PARAMS, *names)

    async def check(request: Request) -> None:
        reject_unknown_params(request.query_params, allowed)

    return check


async def get_pagination(request: Request) -> PaginationParams:
    """Paging and sorting options from the raw query string."""
    return get_pagination_params(request.query_params)
