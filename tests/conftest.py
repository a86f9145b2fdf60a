from collections.abc import AsyncGenerator, Generator
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from staking_api.database import Database
from staking_api.main import create_app
from staking_api.users.models import AuthType, User


# In-memory database shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_ADDRESS = "0x1111111111111111111111111111111111111111"
OTHER_ADDRESS = "0x2222222222222222222222222222222222222222"


def make_test_database() -> Database:
    return Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Create a fresh test database with all tables."""
    db = make_test_database()
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with database.session() as test_session:
        yield test_session


@pytest.fixture
def create_user():
    """Create a User row."""

    async def _create_user(
        session: AsyncSession,
        address: Optional[str] = TEST_ADDRESS,
        email: Optional[str] = None,
        username: Optional[str] = "staker",
        auth_type: AuthType = AuthType.WALLET,
    ) -> User:
        user = User(
            address=address,
            email=email,
            username=username,
            auth_type=auth_type,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client over an app backed by the test database."""
    app = create_app(database=make_test_database())

    # Entering the client runs the lifespan, which creates the tables
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup(client):
    """Register a wallet user through the API."""

    def _signup(address: str = TEST_ADDRESS, **fields) -> dict:
        response = client.post(
            "/api/user/signup",
            json={"address": address, "authType": "WALLET", **fields},
        )
        assert response.status_code == 200, response.json()
        return response.json()["data"]

    return _signup


@pytest.fixture
def stake_payload():
    """Valid body for POST /api/stake/create."""

    def _stake_payload(address: str = TEST_ADDRESS, **overrides) -> dict:
        payload = {
            "userId": address,
            "tokenAddress": "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
            "tokenSymbol": "ETH",
            "amount": 2.5,
            "duration": 30,
            "apy": 12.5,
            "cbvRateAtStake": 1.2,
        }
        payload.update(overrides)
        return payload

    return _stake_payload
