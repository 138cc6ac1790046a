"""Sale repository for realized profit/loss history."""

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select

from portfolio_ledger.core.constants import MoneyConstants
from portfolio_ledger.models.sale import Sale
from portfolio_ledger.repositories.base import BaseRepository


class SaleRepository(BaseRepository[Sale]):
    """Repository for Sale model, scoped per owner and optional symbol."""

    def _conditions(self, owner_id: int, symbol: str | None) -> list[Any]:
        conditions: list[Any] = [Sale.owner_id == owner_id]
        if symbol:
            conditions.append(Sale.symbol == symbol)
        return conditions

    async def list_by_owner(
        self,
        owner_id: int,
        symbol: str | None = None,
        *,
        offset: int = 0,
        limit: int = 10,
    ) -> list[Sale]:
        """Sales newest first."""
        result = await self.db.execute(
            select(Sale)
            .where(*self._conditions(owner_id, symbol))
            .order_by(Sale.sell_date.desc(), Sale.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def summarize(self, owner_id: int, symbol: str | None = None) -> tuple[int, Decimal]:
        """Count and realized profit/loss total of the owner's sales."""
        result = await self.db.execute(
            select(func.count(Sale.id), func.coalesce(func.sum(Sale.profit_loss), 0)).where(
                *self._conditions(owner_id, symbol)
            )
        )
        count, total = result.one()
        return int(count), Decimal(str(total)).quantize(MoneyConstants.AMOUNT_QUANTUM)
