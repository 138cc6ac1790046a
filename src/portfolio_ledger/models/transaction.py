"""Append-only transaction log."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_ledger.db.base import Base, utcnow


class TransactionKind(str, enum.Enum):
    """Direction of a ledger transaction."""

    BUY = "BUY"
    SELL = "SELL"


class Transaction(Base):
    """One buy or sell as the user placed it.

    Rows are never updated or deleted; a correction is a new transaction.
    A sell that depletes several lots still produces exactly one row.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(15, 4))
    kind: Mapped[TransactionKind] = mapped_column(
        Enum(TransactionKind, name="transaction_kind", native_enum=False, length=4)
    )
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("price > 0", name="price_positive"),
        Index("ix_transactions_owner_date", "owner_id", "transaction_date"),
    )

    @property
    def total_amount(self) -> Decimal:
        """Gross amount of the transaction (quantity x price)."""
        return self.price * self.quantity
