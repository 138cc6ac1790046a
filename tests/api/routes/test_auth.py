"""Integration tests for authentication endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.security import create_refresh_token, decode_token
from portfolio_ledger.models.user import User

pytestmark = pytest.mark.integration


async def test_register_with_valid_data(client: AsyncClient, test_db: AsyncSession):
    """Test user registration with valid data."""
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "NewUser@Example.com", "username": "newuser", "password": "NewPass123"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "newuser@example.com"
    assert data["username"] == "newuser"
    assert "hashed_password" not in data

    result = await test_db.execute(select(User).where(User.username == "newuser"))
    assert result.scalar_one_or_none() is not None


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "test@example.com", "username": "differentuser", "password": "NewPass123"},
        {"email": "different@example.com", "username": "testuser", "password": "NewPass123"},
    ],
)
async def test_register_duplicate_is_conflict(client: AsyncClient, test_user: User, payload):
    """Test registration with a taken email or username returns 409."""
    response = await client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 409
    assert response.json()["error_code"] == "CONFLICT"


async def test_register_with_short_password(client: AsyncClient):
    """Test request validation errors keep FastAPI's 422."""
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "short@example.com", "username": "shorty", "password": "abc"},
    )

    assert response.status_code == 422


async def test_login_with_form(client: AsyncClient, test_user: User):
    """Test OAuth2 form login by username and by email."""
    for identifier in ("testuser", "test@example.com"):
        response = await client.post(
            "/api/v1/auth/login", data={"username": identifier, "password": "TestPass123"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert decode_token(body["access_token"])["sub"] == str(test_user.id)


async def test_login_with_wrong_password(client: AsyncClient, test_user: User):
    """Test wrong credentials return 401."""
    response = await client.post(
        "/api/v1/auth/login", data={"username": "testuser", "password": "WrongPass123"}
    )

    assert response.status_code == 401
    assert response.json()["error_code"] == "AUTHENTICATION_ERROR"


async def test_login_inactive_user(client: AsyncClient, test_inactive_user: User):
    """Test inactive users cannot log in."""
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": "inactiveuser", "password": "InactivePass123"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Inactive user"


async def test_login_json_returns_token_pair(client: AsyncClient, test_user: User):
    """Test JSON login returns both tokens."""
    response = await client.post(
        "/api/v1/auth/login/json", json={"username": "testuser", "password": "TestPass123"}
    )

    assert response.status_code == 200
    body = response.json()
    assert decode_token(body["access_token"])["type"] == "access"
    assert decode_token(body["refresh_token"])["type"] == "refresh"


async def test_refresh_issues_new_pair(client: AsyncClient, owner_id: int):
    """Test a refresh token is exchanged for a new pair."""
    response = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(owner_id)}
    )

    assert response.status_code == 200
    assert decode_token(response.json()["access_token"])["sub"] == str(owner_id)


async def test_refresh_rejects_access_token(client: AsyncClient, user_token: str):
    """Test an access token cannot be used as a refresh token."""
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": user_token})

    assert response.status_code == 401


async def test_refresh_rejects_garbage(client: AsyncClient):
    """Test an undecodable refresh token returns 401."""
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": "not-a-jwt"})

    assert response.status_code == 401
