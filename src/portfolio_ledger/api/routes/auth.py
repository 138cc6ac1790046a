"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.deps import DbSession
from portfolio_ledger.core.rate_limit import limiter
from portfolio_ledger.models.user import User
from portfolio_ledger.schemas.auth import Token, TokenPair, TokenRefresh, UserLogin, UserRegister
from portfolio_ledger.schemas.user import UserResponse
from portfolio_ledger.services import user_service

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    db: DbSession,
) -> User:
    """
    Register a new user.

    Raises:
        ConflictError: 409 if the username or email is already registered
    """
    return await user_service.register_user(db, user_data)


@router.post("/login", response_model=Token)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DbSession,
) -> Token:
    """
    OAuth2 compatible token login.

    Get an access token for future requests using username (or email) and
    password.
    """
    tokens = await user_service.create_user_tokens(db, form_data.username, form_data.password)
    return Token(access_token=tokens.access_token)


@router.post("/login/json", response_model=TokenPair)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login_json(
    request: Request,
    credentials: UserLogin,
    db: DbSession,
) -> TokenPair:
    """Login with a JSON body and get both access and refresh tokens."""
    return await user_service.create_user_tokens(db, credentials.username, credentials.password)


@router.post("/refresh", response_model=TokenPair)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def refresh(
    request: Request,
    token_data: TokenRefresh,
    db: DbSession,
) -> TokenPair:
    """
    Exchange a refresh token for a new token pair.

    Raises:
        AuthenticationError: 401 if the refresh token is invalid or expired
    """
    return await user_service.refresh_tokens(db, token_data.refresh_token)
