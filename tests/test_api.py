import uuid
from datetime import datetime, timedelta

from fastapi import status
from fastapi.testclient import TestClient

from staking_api.database import get_session
from staking_api.main import create_app
from tests.conftest import OTHER_ADDRESS, TEST_ADDRESS, make_test_database


def parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestUserRoutes:
    """Tests for the /user routes."""

    def test_signup_then_login(self, client):
        # Act
        first = client.post(
            "/api/user/signup",
            json={"address": TEST_ADDRESS, "authType": "WALLET"},
        )
        second = client.post(
            "/api/user/signup",
            json={"address": TEST_ADDRESS, "authType": "WALLET"},
        )

        # Assert
        assert first.status_code == status.HTTP_200_OK
        assert first.json()["message"] == "User created successfully"
        assert first.json()["data"]["authType"] == "WALLET"
        assert second.json()["message"] == "User logged in successfully"
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

    def test_signup_without_auth_type(self, client):
        response = client.post(
            "/api/user/signup", json={"address": TEST_ADDRESS}
        )

        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert response.json() == {
            "status_code": 500,
            "status": False,
            "message": "Missing required fields: authType",
            "data": None,
        }

    def test_update_profile(self, client, signup):
        # Arrange
        signup()

        # Act
        response = client.put(
            "/api/user/update",
            json={"userId": TEST_ADDRESS, "username": "whale"},
        )

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == (
            "User profile updated successfully"
        )
        assert response.json()["data"]["username"] == "whale"

    def test_get_users_filtered(self, client, signup):
        # Arrange
        signup()
        signup(OTHER_ADDRESS)

        # Act
        response = client.get(
            "/api/user", params={"address": OTHER_ADDRESS}
        )

        # Assert
        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["message"] == "Fetched User Details Successfully"
        assert [user["address"] for user in body["data"]] == [OTHER_ADDRESS]
        assert body["pagination"]["totalItems"] == 1


class TestStakeRoutes:
    """Tests for the /stake routes."""

    def test_create_stake(self, client, signup, stake_payload):
        # Arrange
        signup()

        # Act
        response = client.post(
            "/api/stake/create", json=stake_payload(duration=14)
        )

        # Assert
        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["status"] is True
        assert body["message"] == "Stake created successfully"
        stake = body["data"]
        assert stake["userId"] == TEST_ADDRESS
        assert stake["status"] == "ACTIVE"
        assert parse_time(stake["endTime"]) - parse_time(
            stake["startTime"]
        ) == timedelta(days=14)

    def test_create_stake_missing_fields(self, client):
        # Act
        response = client.post(
            "/api/stake/create", json={"userId": TEST_ADDRESS}
        )

        # Assert
        body = response.json()
        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert body["status"] is False
        assert body["data"] is None
        assert body["message"] == (
            "Missing required fields: tokenAddress, tokenSymbol, amount, "
            "duration, apy"
        )

    def test_create_stake_for_unknown_user(self, client, stake_payload):
        response = client.post(
            "/api/stake/create", json=stake_payload(OTHER_ADDRESS)
        )

        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert response.json()["message"] == "User not found"

    def test_update_duration_and_unstake(self, client, signup, stake_payload):
        # Arrange
        signup()
        created = client.post(
            "/api/stake/create", json=stake_payload()
        ).json()["data"]

        # Act
        response = client.put(
            "/api/stake/update",
            json={
                "stakeId": created["id"],
                "duration": 60,
                "status": "UNSTAKED",
            },
        )

        # Assert
        stake = response.json()["data"]
        assert response.status_code == status.HTTP_200_OK
        assert stake["status"] == "UNSTAKED"
        assert parse_time(stake["endTime"]) - parse_time(
            stake["startTime"]
        ) == timedelta(days=60)

        unstakes = client.get(
            "/api/transaction/list",
            params={"userId": TEST_ADDRESS, "type": "UNSTAKE"},
        ).json()
        assert unstakes["pagination"]["totalItems"] == 1
        assert unstakes["data"][0]["amount"] == created["amount"]

    def test_update_unknown_stake(self, client):
        response = client.put(
            "/api/stake/update",
            json={"stakeId": str(uuid.uuid4()), "amount": 1},
        )

        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert response.json()["message"] == "Stake not found"

    def test_list_for_unknown_address_is_empty(self, client):
        # Act
        response = client.get(
            "/api/stake/list", params={"userId": OTHER_ADDRESS}
        )

        # Assert
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "status_code": 200,
            "status": True,
            "message": "No stakes found for user",
            "pagination": {
                "totalItems": 0,
                "totalPages": 0,
                "currentPage": 1,
            },
            "data": [],
        }

    def test_list_paginates(self, client, signup, stake_payload):
        # Arrange
        signup()
        for amount in (1, 2, 3):
            client.post("/api/stake/create", json=stake_payload(amount=amount))

        # Act
        response = client.get(
            "/api/stake/list",
            params={
                "userId": TEST_ADDRESS,
                "page": 2,
                "limit": 2,
                "sortBy": "amount",
                "order": "asc",
            },
        )

        # Assert
        body = response.json()
        assert body["message"] == "Stakes retrieved successfully"
        assert [stake["amount"] for stake in body["data"]] == [3]
        assert body["pagination"] == {
            "totalItems": 3,
            "totalPages": 2,
            "currentPage": 2,
        }

    def test_list_rejects_unknown_query_param(self, client):
        response = client.get("/api/stake/list", params={"wallet": "0x1"})

        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert response.json()["message"] == (
            "Invalid query parameter: wallet"
        )

    def test_list_rejects_invalid_page(self, client):
        response = client.get("/api/stake/list", params={"page": "abc"})

        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert "page" in response.json()["message"]


class TestTransactionRoutes:
    """Tests for the /swap, /transfer and /transaction routes."""

    def test_create_swap(self, client, signup):
        # Arrange
        signup()

        # Act
        response = client.post(
            "/api/swap/create",
            json={
                "userId": TEST_ADDRESS,
                "fromToken": "ETH",
                "toToken": "USDC",
                "fromAmount": 1,
                "toAmount": 3000,
                "swapRate": 3000,
            },
        )

        # Assert
        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["message"] == "Swap transaction created successfully"
        assert body["data"]["type"] == "SWAP"
        assert body["data"]["status"] == "PENDING"

    def test_create_transfer(self, client, signup):
        signup()

        response = client.post(
            "/api/transfer/create",
            json={
                "userId": TEST_ADDRESS,
                "recipient": OTHER_ADDRESS,
                "amount": 5,
                "tokenAddress": "0xtoken",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["type"] == "TRANSFER"

    def test_external_duplicate_hash_is_rejected(self, client, signup):
        # Arrange
        signup()
        payload = {
            "userId": TEST_ADDRESS,
            "type": "EXTERNAL_TRANSFER",
            "externalTxHash": "0xfeed",
            "externalService": "etherscan",
        }

        # Act
        first = client.post("/api/transaction/external", json=payload)
        second = client.post("/api/transaction/external", json=payload)

        # Assert
        assert first.status_code == status.HTTP_200_OK
        assert first.json()["data"]["status"] == "CONFIRMED"
        assert second.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert second.json()["message"] == (
            "Transaction with this external hash already exists"
        )

    def test_stake_creates_companion_transaction(
        self, client, signup, stake_payload
    ):
        # Arrange
        signup()
        client.post("/api/stake/create", json=stake_payload())

        # Act
        response = client.get(
            "/api/transaction/list",
            params={"userId": TEST_ADDRESS, "type": "STAKE"},
        )

        # Assert
        transactions = response.json()["data"]
        assert len(transactions) == 1
        assert transactions[0]["status"] == "CONFIRMED"
        assert transactions[0]["externalService"] == "INTERNAL_STAKING"
        assert transactions[0]["userId"] == TEST_ADDRESS

    def test_get_transaction_by_unknown_id(self, client):
        response = client.get(
            "/api/transaction", params={"id": str(uuid.uuid4())}
        )

        assert response.status_code == (
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        assert response.json()["message"] == (
            "No transaction found with this ID."
        )


class TestAppRoutes:
    """Tests for app-level routes and fallbacks."""

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok"}

    def test_database_health(self, client):
        response = client.get("/api/health/database")

        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["data"]["status"] == "healthy"
        assert "responseTimeMs" in body["data"]

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["status"] is False
        assert response.json()["data"] is None

    def test_request_id_header(self, client):
        response = client.get("/api/stake/list")

        assert "x-request-id" in response.headers

    def test_dependency_failure_uses_envelope_with_cors(self):
        # Arrange
        app = create_app(database=make_test_database())

        async def broken_session():
            raise RuntimeError("session setup failed")

        app.dependency_overrides[get_session] = broken_session

        # Act
        with TestClient(app, raise_server_exceptions=False) as failing_client:
            response = failing_client.get(
                "/api/stake/list",
                headers={"Origin": "http://localhost:5173"},
            )

        # Assert
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {
            "status_code": 500,
            "status": False,
            "message": "session setup failed",
            "data": None,
        }
        assert response.headers["access-control-allow-origin"] == (
            "http://localhost:5173"
        )
