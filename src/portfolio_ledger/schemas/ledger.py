"""Buy/sell request and result schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class TradeRequest(BaseModel):
    """Fields shared by buy and sell requests."""

    symbol: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., gt=0, description="Whole shares")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Symbols are stored upper-case without surrounding whitespace."""
        v = v.strip().upper()
        if not v:
            raise ValueError("Symbol cannot be blank")
        return v


class BuyRequest(TradeRequest):
    """Schema for buying shares (creates one lot)."""

    unit_price: Decimal = Field(..., gt=0, max_digits=15, decimal_places=4)
    purchase_date: datetime | None = None


class SellRequest(TradeRequest):
    """Schema for selling shares (depletes lots FIFO)."""

    sell_price: Decimal = Field(..., gt=0, max_digits=15, decimal_places=4)
    sell_date: datetime | None = None


class BuyResult(BaseModel):
    """Identifiers created by a buy."""

    lot_id: int
    transaction_id: int


class LotDepletion(BaseModel):
    """How much of one lot a sell consumed."""

    lot_id: int
    quantity: int
    purchase_price: Decimal
    remaining_quantity: int

    @property
    def cost(self) -> Decimal:
        """Purchase cost of the consumed shares."""
        return self.purchase_price * self.quantity


class SellResult(BaseModel):
    """Outcome of a sell: the transaction, the sale and its realized result."""

    transaction_id: int
    sale_id: int
    symbol: str
    quantity: int
    sell_price: Decimal
    cost_basis: Decimal
    profit_loss: Decimal
    depletions: list[LotDepletion]
