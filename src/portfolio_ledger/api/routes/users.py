"""User endpoints."""

from fastapi import APIRouter

from portfolio_ledger.core.deps import CurrentActiveUser
from portfolio_ledger.models.user import User
from portfolio_ledger.schemas.user import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: CurrentActiveUser) -> User:
    """
    Get current authenticated user.

    Args:
        current_user: The authenticated user (from dependency)

    Returns:
        The current user
    """
    return current_user
