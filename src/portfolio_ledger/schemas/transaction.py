"""Transaction log query schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from portfolio_ledger.core.constants import APIConstants
from portfolio_ledger.models.transaction import TransactionKind
from portfolio_ledger.schemas.user import UserSummary


class TransactionFilters(BaseModel):
    """Optional filters over an owner's transaction log.

    ``symbol`` is a case-insensitive substring match; the date range is
    inclusive on both ends.
    """

    symbol: str | None = None
    kind: TransactionKind | None = None
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("symbol")
    @classmethod
    def blank_symbol_is_none(cls, v: str | None) -> str | None:
        """Treat an empty symbol filter as no filter."""
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_validator("kind", mode="before")
    @classmethod
    def upper_kind(cls, v: object) -> object:
        """Accept ``buy``/``sell`` in any case."""
        if isinstance(v, str):
            return v.strip().upper() or None
        return v

    @model_validator(mode="after")
    def check_date_range(self) -> "TransactionFilters":
        """start_date must not be after end_date."""
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class PaginationParams(BaseModel):
    """Page selection for list endpoints."""

    page: int = Field(1, ge=1)
    limit: int = Field(APIConstants.DEFAULT_PAGE_SIZE, ge=1, le=APIConstants.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        """Rows to skip before this page."""
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    """Pagination descriptor returned with every page."""

    total: int
    total_pages: int
    current_page: int
    limit: int


class TransactionResponse(BaseModel):
    """Schema for one transaction row."""

    id: int
    symbol: str
    quantity: int
    price: Decimal
    kind: TransactionKind
    transaction_date: datetime
    total_amount: Decimal

    model_config = {"from_attributes": True}


class TransactionStats(BaseModel):
    """Aggregates over the filtered, unpaginated transaction set."""

    total_transactions: int = 0
    total_buys: int = 0
    total_sells: int = 0
    total_invested: Decimal = Decimal("0")
    total_sold: Decimal = Decimal("0")
    net_position: Decimal = Decimal("0")


class TransactionPage(BaseModel):
    """One page of transactions with pagination metadata and stats."""

    transactions: list[TransactionResponse]
    pagination: PaginationMeta
    stats: TransactionStats


class TransactionReport(BaseModel):
    """The whole filtered transaction set for printing."""

    transactions: list[TransactionResponse]
    stats: TransactionStats
    filters: TransactionFilters
    owner: UserSummary
    generated_at: datetime


class SaleResponse(BaseModel):
    """Schema for one realized sale."""

    id: int
    transaction_id: int
    symbol: str
    quantity: int
    sell_price: Decimal
    cost_basis: Decimal
    profit_loss: Decimal
    sell_date: datetime

    model_config = {"from_attributes": True}


class SalePage(BaseModel):
    """One page of sales with the realized total of the filtered set."""

    sales: list[SaleResponse]
    pagination: PaginationMeta
    total_profit_loss: Decimal
