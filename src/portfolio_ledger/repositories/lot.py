"""Lot repository: the holdings store."""

from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import func, select

from portfolio_ledger.core.constants import MoneyConstants
from portfolio_ledger.models.lot import Lot
from portfolio_ledger.repositories.base import BaseRepository


class PositionAggregate(NamedTuple):
    """Per-symbol totals over an owner's active lots."""

    symbol: str
    quantity: int
    total_cost: Decimal
    lot_count: int
    first_purchase_date: datetime | None


class LotRepository(BaseRepository[Lot]):
    """Repository for Lot model with position-scoped queries.

    Lots are always returned in FIFO order: purchase date ascending, ties
    broken by id ascending.

    Example:
        >>> repo = LotRepository(Lot, db)
        >>> lots = await repo.get_active_lots(owner_id, "EMAAR")
    """

    async def get_active_lots(self, owner_id: int, symbol: str | None = None) -> list[Lot]:
        """Get an owner's lots, optionally for one symbol.

        Returns:
            Lots ordered by symbol, then FIFO order within each symbol
        """
        query = select(Lot).where(Lot.owner_id == owner_id)
        if symbol is not None:
            query = query.where(Lot.symbol == symbol)
        result = await self.db.execute(query.order_by(Lot.symbol, Lot.purchase_date, Lot.id))
        return list(result.scalars().all())

    async def lock_position_lots(self, owner_id: int, symbol: str) -> list[Lot]:
        """Load one position's lots in FIFO order with row locks.

        ``FOR UPDATE`` makes a concurrent sell in another process wait until
        this transaction ends and then see the post-sale rows. SQLite ignores
        the clause; its writers are serialized by the database lock.

        ``populate_existing`` refreshes lots already in the session so the
        sufficiency check never runs on stale quantities.
        """
        result = await self.db.execute(
            select(Lot)
            .where(Lot.owner_id == owner_id, Lot.symbol == symbol)
            .order_by(Lot.purchase_date, Lot.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_position_aggregates(self, owner_id: int) -> list[PositionAggregate]:
        """Aggregate an owner's lots per symbol, ordered by symbol."""
        result = await self.db.execute(
            select(
                Lot.symbol,
                func.sum(Lot.quantity),
                func.sum(Lot.quantity * Lot.purchase_price),
                func.count(Lot.id),
                func.min(Lot.purchase_date),
            )
            .where(Lot.owner_id == owner_id)
            .group_by(Lot.symbol)
            .order_by(Lot.symbol)
        )
        return [
            PositionAggregate(
                symbol=symbol,
                quantity=int(quantity),
                total_cost=Decimal(str(total_cost)).quantize(MoneyConstants.PRICE_QUANTUM),
                lot_count=int(lot_count),
                first_purchase_date=first_purchase_date,
            )
            for symbol, quantity, total_cost, lot_count, first_purchase_date in result.all()
        ]
