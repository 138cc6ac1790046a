"""Lot and position schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class LotResponse(BaseModel):
    """Schema for an active lot."""

    id: int
    symbol: str
    quantity: int
    purchase_price: Decimal
    purchase_date: datetime

    model_config = {"from_attributes": True}


class Position(BaseModel):
    """All active lots of one symbol, aggregated."""

    symbol: str
    quantity: int
    average_purchase_price: Decimal
    total_cost: Decimal
    lot_count: int
    first_purchase_date: datetime | None = None
