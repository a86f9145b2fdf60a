from fastapi import APIRouter, Depends

from staking_api.api.dependencies import verify_auth_token
from staking_api.api.endpoints import health, stakes, transactions, users


api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    users.router,
    prefix="/user",
    tags=["Users"],
)

api_router.include_router(
    stakes.router,
    prefix="/stake",
    tags=["Stakes"],
)

api_router.include_router(
    transactions.swap_router,
    prefix="/swap",
    tags=["Transactions"],
    dependencies=[Depends(verify_auth_token)],
)

api_router.include_router(
    transactions.transfer_router,
    prefix="/transfer",
    tags=["Transactions"],
    dependencies=[Depends(verify_auth_token)],
)

api_router.include_router(
    transactions.router,
    prefix="/transaction",
    tags=["Transactions"],
    dependencies=[Depends(verify_auth_token)],
)

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"],
)
