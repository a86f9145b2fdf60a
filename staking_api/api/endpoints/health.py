from fastapi import APIRouter, Request, status

from staking_api.api.handler import api_handler
from staking_api.exceptions import DatabaseUnavailableError
from staking_api.health import DatabaseHealthStatus, check_database_health
from staking_api.schemas import HandlerResult, ResponseEnvelope


router = APIRouter()


@router.get(
    "/database",
    response_model=ResponseEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Database health",
    description="Probe the database; answers 503 when it does not respond.",
)
@api_handler("Database connection successful")
async def database_health(
    request: Request,
) -> HandlerResult[DatabaseHealthStatus]:
    result = await check_database_health(request.app.state.database)
    if not result.is_healthy:
        raise DatabaseUnavailableError(result.error or result.message)
    return HandlerResult(data=result)
