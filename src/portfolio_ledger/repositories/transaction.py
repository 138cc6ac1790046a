"""Transaction repository: filtered reads over the append-only log."""

from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import case, func, select

from portfolio_ledger.core.constants import MoneyConstants
from portfolio_ledger.models.transaction import Transaction, TransactionKind
from portfolio_ledger.repositories.base import BaseRepository
from portfolio_ledger.schemas.transaction import TransactionFilters, TransactionStats


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model.

    Every read is scoped to one owner and a ``TransactionFilters``; the
    count, page and stats queries share the same WHERE clause so the stats
    always describe exactly the set being paginated.

    Example:
        >>> repo = TransactionRepository(Transaction, db)
        >>> filters = TransactionFilters(kind="BUY")
        >>> page = await repo.list_filtered(owner_id, filters, offset=0, limit=10)
    """

    def _conditions(self, owner_id: int, filters: TransactionFilters) -> list[Any]:
        conditions: list[Any] = [Transaction.owner_id == owner_id]
        if filters.symbol:
            conditions.append(func.upper(Transaction.symbol).contains(filters.symbol, autoescape=True))
        if filters.kind:
            conditions.append(Transaction.kind == filters.kind)
        if filters.start_date:
            conditions.append(Transaction.transaction_date >= _day_start(filters.start_date))
        if filters.end_date:
            conditions.append(
                Transaction.transaction_date < _day_start(filters.end_date + timedelta(days=1))
            )
        return conditions

    async def count_filtered(self, owner_id: int, filters: TransactionFilters) -> int:
        """Number of transactions matching the filters."""
        result = await self.db.execute(
            select(func.count(Transaction.id)).where(*self._conditions(owner_id, filters))
        )
        return int(result.scalar_one())

    async def list_filtered(
        self,
        owner_id: int,
        filters: TransactionFilters,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Transaction]:
        """Transactions matching the filters, newest first.

        Args:
            offset: Rows to skip
            limit: Page size; None returns the whole filtered set
        """
        query = (
            select(Transaction)
            .where(*self._conditions(owner_id, filters))
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        )
        if limit is not None:
            query = query.offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def stats_filtered(self, owner_id: int, filters: TransactionFilters) -> TransactionStats:
        """Counts and amounts by kind over the filtered set (no LIMIT/OFFSET)."""
        amount = Transaction.quantity * Transaction.price
        is_buy = Transaction.kind == TransactionKind.BUY
        is_sell = Transaction.kind == TransactionKind.SELL
        result = await self.db.execute(
            select(
                func.count(Transaction.id),
                func.coalesce(func.sum(case((is_buy, 1), else_=0)), 0),
                func.coalesce(func.sum(case((is_sell, 1), else_=0)), 0),
                func.coalesce(func.sum(case((is_buy, amount), else_=0)), 0),
                func.coalesce(func.sum(case((is_sell, amount), else_=0)), 0),
            ).where(*self._conditions(owner_id, filters))
        )
        total, buys, sells, invested, sold = result.one()
        total_invested = Decimal(str(invested)).quantize(MoneyConstants.PRICE_QUANTUM)
        total_sold = Decimal(str(sold)).quantize(MoneyConstants.PRICE_QUANTUM)
        return TransactionStats(
            total_transactions=int(total),
            total_buys=int(buys),
            total_sells=int(sells),
            total_invested=total_invested,
            total_sold=total_sold,
            net_position=total_sold - total_invested,
        )
