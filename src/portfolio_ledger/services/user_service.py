"""Service layer for user accounts and authentication.

Registration, credential checks and token issuing live here so the auth
routes stay thin. Every ledger call is scoped to the user id these tokens
carry.
"""

import logging

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.exceptions import AuthenticationError, ConflictError, ValidationError
from portfolio_ledger.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from portfolio_ledger.db.session import transactional
from portfolio_ledger.models.user import User
from portfolio_ledger.repositories.user import UserRepository
from portfolio_ledger.schemas.auth import TokenPair, UserRegister

logger = logging.getLogger(__name__)


async def register_user(db: AsyncSession, user_data: UserRegister) -> User:
    """Create a new active user.

    Args:
        db: Async database session
        user_data: Validated registration payload

    Returns:
        The created user

    Raises:
        ConflictError: Username or email already registered
    """
    repo = UserRepository(User, db)
    if await repo.exists_by_username_or_email(user_data.username, user_data.email):
        raise ConflictError("Username or email already registered")

    async with transactional(db):
        user = await repo.create(
            obj_in={
                "email": user_data.email.lower(),
                "username": user_data.username,
                "hashed_password": get_password_hash(user_data.password),
                "is_active": True,
            }
        )

    logger.info(f"Registered user {user.id} ({user.username})")
    return user


async def authenticate_user(
    db: AsyncSession,
    username_or_email: str,
    password: str,
) -> User:
    """Authenticate a user by username/email and password.

    Args:
        db: Async database session
        username_or_email: Username or email address
        password: Plain text password to verify

    Returns:
        User: Authenticated user instance

    Raises:
        AuthenticationError: Unknown user or wrong password
        ValidationError: The user is inactive

    Example:
        >>> user = await authenticate_user(db, "john@example.com", "secret123")
        >>> print(user.username)
        johndoe
    """
    user = await UserRepository(User, db).get_by_username_or_email(username_or_email)

    if not user or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login attempt for {username_or_email!r}")
        raise AuthenticationError("Incorrect username or password")

    if not user.is_active:
        raise ValidationError("Inactive user")

    return user


def issue_tokens(user: User) -> TokenPair:
    """Access and refresh tokens for ``user``."""
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


async def create_user_tokens(
    db: AsyncSession,
    username_or_email: str,
    password: str,
) -> TokenPair:
    """Authenticate the user and issue a token pair.

    Raises:
        AuthenticationError: Invalid credentials
        ValidationError: The user is inactive
    """
    user = await authenticate_user(db, username_or_email, password)
    return issue_tokens(user)


async def refresh_tokens(db: AsyncSession, refresh_token: str) -> TokenPair:
    """Exchange a valid refresh token for a new token pair.

    Raises:
        AuthenticationError: Invalid, expired or non-refresh token, or the
            user no longer exists or is inactive
    """
    try:
        payload = decode_token(refresh_token)
        if payload.get("type") != REFRESH_TOKEN_TYPE:
            raise AuthenticationError("Invalid refresh token")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise AuthenticationError("Invalid refresh token") from e

    user = await UserRepository(User, db).get(user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid refresh token")

    return issue_tokens(user)
