"""Dependencies for FastAPI routes."""

from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.constants import APIConstants
from portfolio_ledger.core.security import ACCESS_TOKEN_TYPE, decode_token
from portfolio_ledger.db.session import get_db
from portfolio_ledger.models.user import User
from portfolio_ledger.repositories.user import UserRepository
from portfolio_ledger.schemas.transaction import PaginationParams
from portfolio_ledger.services.quote_service import QuoteProvider, YFinanceQuoteProvider

# OAuth2 scheme for extracting token from Authorization header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Get the current authenticated user from JWT token.

    The ledger trusts the owner id resolved here for every call.

    Raises:
        HTTPException: If credentials are invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        subject = payload.get("sub")
        if subject is None or payload.get("type") != ACCESS_TOKEN_TYPE:
            raise credentials_exception
        user_id = int(subject)
    except (jwt.InvalidTokenError, ValueError):
        raise credentials_exception

    user = await UserRepository(User, db).get(user_id)
    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Get the current authenticated and active user.

    Raises:
        HTTPException: If the user is inactive
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )

    return current_user


_default_quote_provider = YFinanceQuoteProvider()


def get_quote_provider() -> QuoteProvider:
    """Quote provider used by valuation routes; overridden in tests."""
    return _default_quote_provider


def get_pagination(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=APIConstants.MAX_PAGE_SIZE)] = APIConstants.DEFAULT_PAGE_SIZE,
) -> PaginationParams:
    """Page selection from the query string."""
    return PaginationParams(page=page, limit=limit)


# Type aliases for cleaner dependency injection
CurrentActiveUser = Annotated[User, Depends(get_current_active_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
QuoteProviderDep = Annotated[QuoteProvider, Depends(get_quote_provider)]
Pagination = Annotated[PaginationParams, Depends(get_pagination)]
