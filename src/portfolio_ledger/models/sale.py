"""Sale model: realized result of a completed sell."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_ledger.db.base import Base, utcnow


class Sale(Base):
    """Realized profit or loss of one sell.

    ``cost_basis`` is the FIFO-weighted average unit price of the lots the
    sell consumed, so ``profit_loss == (sell_price - cost_basis) * quantity``
    up to rounding.
    """

    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="RESTRICT"), unique=True
    )
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    sell_price: Mapped[Decimal] = mapped_column(Numeric(15, 4))
    cost_basis: Mapped[Decimal] = mapped_column(Numeric(15, 4))
    profit_loss: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    sell_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (CheckConstraint("quantity > 0", name="quantity_positive"),)
