"""Portfolio valuation schemas."""

from decimal import Decimal

from pydantic import BaseModel


class LotValuation(BaseModel):
    """Market value of one lot."""

    lot_id: int
    quantity: int
    purchase_price: Decimal
    current_price: Decimal
    investment_value: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_percent: Decimal


class PositionValuation(BaseModel):
    """Market value of one position.

    ``price_available`` is False when the quote lookup failed and the lots
    were valued at their own purchase prices.
    """

    symbol: str
    quantity: int
    average_purchase_price: Decimal
    current_price: Decimal
    investment_value: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_percent: Decimal
    price_available: bool
    lots: list[LotValuation]


class ValuationSummary(BaseModel):
    """Totals across every position of the owner."""

    total_investment: Decimal
    current_value: Decimal
    total_profit_loss: Decimal
    total_profit_loss_percent: Decimal
    position_count: int
    priced_position_count: int


class PortfolioValuation(BaseModel):
    """Positions with market values plus the aggregate summary."""

    positions: list[PositionValuation]
    summary: ValuationSummary
