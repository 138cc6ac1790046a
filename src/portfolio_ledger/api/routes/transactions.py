"""Transaction log endpoints."""

from datetime import date
from typing import Annotated

import pydantic
from fastapi import APIRouter, Depends, Query

from portfolio_ledger.core.deps import CurrentActiveUser, DbSession, Pagination
from portfolio_ledger.core.exceptions import ValidationError
from portfolio_ledger.schemas.transaction import (
    TransactionFilters,
    TransactionPage,
    TransactionReport,
    TransactionStats,
)
from portfolio_ledger.services import transaction_query_service

router = APIRouter()


def get_transaction_filters(
    symbol: Annotated[str | None, Query(max_length=20)] = None,
    kind: Annotated[str | None, Query(alias="type", description="BUY or SELL")] = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> TransactionFilters:
    """
    Build the filter set from the query string.

    Raises:
        ValidationError: 400 for an unknown kind or an inverted date range
    """
    try:
        return TransactionFilters(
            symbol=symbol, kind=kind, start_date=start_date, end_date=end_date
        )
    except pydantic.ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise ValidationError(f"Invalid transaction filters: {messages}") from e


Filters = Annotated[TransactionFilters, Depends(get_transaction_filters)]


@router.get("", response_model=TransactionPage | TransactionReport)
async def list_transactions(
    current_user: CurrentActiveUser,
    db: DbSession,
    filters: Filters,
    pagination: Pagination,
    print_view: Annotated[bool, Query(alias="print")] = False,
) -> TransactionPage | TransactionReport:
    """
    Filtered transaction log, newest first.

    With ``print=true`` pagination is bypassed and the whole filtered set is
    returned as a report. Stats always cover the whole filtered set.
    """
    if print_view:
        return await transaction_query_service.print_transactions(db, current_user, filters)
    return await transaction_query_service.query_transactions(
        db, current_user.id, filters, pagination
    )


@router.get("/print", response_model=TransactionReport)
async def print_transactions(
    current_user: CurrentActiveUser,
    db: DbSession,
    filters: Filters,
) -> TransactionReport:
    """Every transaction matching the filters, with owner details and stats."""
    return await transaction_query_service.print_transactions(db, current_user, filters)


@router.get("/stats", response_model=TransactionStats)
async def transaction_stats(
    current_user: CurrentActiveUser,
    db: DbSession,
    filters: Filters,
) -> TransactionStats:
    """
    Transaction statistics without the rows.

    Example:
        GET /api/v1/transactions/stats?start_date=2024-01-01&end_date=2024-03-31
    """
    return await transaction_query_service.get_transaction_stats(db, current_user.id, filters)
