"""Read side of the transaction log and the realized sales history."""

import logging
from datetime import UTC, datetime
from math import ceil

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.db.session import read_only_transaction
from portfolio_ledger.models.sale import Sale
from portfolio_ledger.models.transaction import Transaction
from portfolio_ledger.models.user import User
from portfolio_ledger.repositories.sale import SaleRepository
from portfolio_ledger.repositories.transaction import TransactionRepository
from portfolio_ledger.schemas.transaction import (
    PaginationMeta,
    PaginationParams,
    SalePage,
    SaleResponse,
    TransactionFilters,
    TransactionPage,
    TransactionReport,
    TransactionResponse,
    TransactionStats,
)
from portfolio_ledger.schemas.user import UserSummary

logger = logging.getLogger(__name__)


def build_pagination_meta(total: int, pagination: PaginationParams) -> PaginationMeta:
    """Pagination descriptor for ``total`` rows split into pages of ``limit``."""
    return PaginationMeta(
        total=total,
        total_pages=ceil(total / pagination.limit) if total else 0,
        current_page=pagination.page,
        limit=pagination.limit,
    )


async def query_transactions(
    db: AsyncSession,
    owner_id: int,
    filters: TransactionFilters,
    pagination: PaginationParams,
) -> TransactionPage:
    """One page of the owner's transactions, newest first.

    The stats cover the whole filtered set, not only the returned page.
    """
    repo = TransactionRepository(Transaction, db)
    async with read_only_transaction(db):
        total = await repo.count_filtered(owner_id, filters)
        rows = await repo.list_filtered(
            owner_id, filters, offset=pagination.offset, limit=pagination.limit
        )
        stats = await repo.stats_filtered(owner_id, filters)

    return TransactionPage(
        transactions=[TransactionResponse.model_validate(row) for row in rows],
        pagination=build_pagination_meta(total, pagination),
        stats=stats,
    )


async def get_transaction_stats(
    db: AsyncSession,
    owner_id: int,
    filters: TransactionFilters,
) -> TransactionStats:
    """Counts and buy/sell amounts over the filtered log, without any rows."""
    repo = TransactionRepository(Transaction, db)
    async with read_only_transaction(db):
        return await repo.stats_filtered(owner_id, filters)


async def print_transactions(
    db: AsyncSession,
    owner: User,
    filters: TransactionFilters,
) -> TransactionReport:
    """Every transaction matching the filters, for a printable report.

    Pagination is bypassed; the report carries the applied filters, the
    owner and when it was generated.
    """
    repo = TransactionRepository(Transaction, db)
    async with read_only_transaction(db):
        rows = await repo.list_filtered(owner.id, filters)
        stats = await repo.stats_filtered(owner.id, filters)

    logger.info(f"Generated transaction report for owner {owner.id} ({len(rows)} rows)")
    return TransactionReport(
        transactions=[TransactionResponse.model_validate(row) for row in rows],
        stats=stats,
        filters=filters,
        owner=UserSummary(username=owner.username, email=owner.email),
        generated_at=datetime.now(UTC),
    )


async def list_sales(
    db: AsyncSession,
    owner_id: int,
    pagination: PaginationParams,
    symbol: str | None = None,
) -> SalePage:
    """Realized sales newest first, with the total profit/loss of the filtered set."""
    symbol = symbol.strip().upper() or None if symbol else None
    repo = SaleRepository(Sale, db)
    async with read_only_transaction(db):
        total, total_profit_loss = await repo.summarize(owner_id, symbol)
        rows = await repo.list_by_owner(
            owner_id, symbol, offset=pagination.offset, limit=pagination.limit
        )

    return SalePage(
        sales=[SaleResponse.model_validate(row) for row in rows],
        pagination=build_pagination_meta(total, pagination),
        total_profit_loss=total_profit_loss,
    )
