"""Schemas package."""

from portfolio_ledger.schemas.auth import Token, TokenPair, TokenRefresh, UserLogin, UserRegister
from portfolio_ledger.schemas.ledger import (
    BuyRequest,
    BuyResult,
    LotDepletion,
    SellRequest,
    SellResult,
)
from portfolio_ledger.schemas.lot import LotResponse, Position
from portfolio_ledger.schemas.quote import SymbolMatch
from portfolio_ledger.schemas.transaction import (
    PaginationMeta,
    PaginationParams,
    SalePage,
    SaleResponse,
    TransactionFilters,
    TransactionPage,
    TransactionReport,
    TransactionResponse,
    TransactionStats,
)
from portfolio_ledger.schemas.user import UserBase, UserResponse, UserSummary
from portfolio_ledger.schemas.valuation import (
    LotValuation,
    PortfolioValuation,
    PositionValuation,
    ValuationSummary,
)

__all__ = [
    # Authentication schemas
    "Token",
    "TokenPair",
    "TokenRefresh",
    "UserLogin",
    "UserRegister",
    # User schemas
    "UserBase",
    "UserResponse",
    "UserSummary",
    # Ledger schemas
    "BuyRequest",
    "BuyResult",
    "SellRequest",
    "SellResult",
    "LotDepletion",
    # Lot and position schemas
    "LotResponse",
    "Position",
    # Quote schemas
    "SymbolMatch",
    # Valuation schemas
    "LotValuation",
    "PositionValuation",
    "ValuationSummary",
    "PortfolioValuation",
    # Transaction log schemas
    "TransactionFilters",
    "PaginationParams",
    "PaginationMeta",
    "TransactionResponse",
    "TransactionStats",
    "TransactionPage",
    "TransactionReport",
    "SaleResponse",
    "SalePage",
]
