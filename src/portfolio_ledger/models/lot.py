"""Lot model: the remaining quantity and price basis of one purchase."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_ledger.db.base import Base, TimestampMixin, utcnow


class Lot(Base, TimestampMixin):
    """One purchase event still (partly) held by its owner.

    Only ``quantity`` changes after creation, and only downwards through
    sells. A lot whose quantity reaches zero is deleted rather than kept.
    """

    __tablename__ = "lots"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[int] = mapped_column(Integer)
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(15, 4))
    purchase_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("purchase_price > 0", name="purchase_price_positive"),
        # FIFO scan order for one position
        Index("ix_lots_owner_symbol_fifo", "owner_id", "symbol", "purchase_date", "id"),
    )

    @property
    def cost(self) -> Decimal:
        """Total purchase cost of the remaining quantity."""
        return self.purchase_price * self.quantity
