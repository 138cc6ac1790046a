"""Portfolio endpoints: buy, sell, positions, valuation and symbol search.

Every endpoint acts on the authenticated user's own ledger.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Path, Query, Request, status

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.constants import QuoteConstants
from portfolio_ledger.core.deps import CurrentActiveUser, DbSession, Pagination, QuoteProviderDep
from portfolio_ledger.core.exceptions import ValidationError
from portfolio_ledger.core.rate_limit import limiter
from portfolio_ledger.models.lot import Lot
from portfolio_ledger.schemas.ledger import BuyRequest, BuyResult, SellRequest, SellResult
from portfolio_ledger.schemas.lot import LotResponse, Position
from portfolio_ledger.schemas.quote import SymbolMatch
from portfolio_ledger.schemas.transaction import SalePage
from portfolio_ledger.schemas.valuation import PortfolioValuation
from portfolio_ledger.services import ledger_service, transaction_query_service, valuation_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/buy", response_model=BuyResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.LEDGER_RATE_LIMIT)
async def buy(
    request: Request,
    trade: BuyRequest,
    current_user: CurrentActiveUser,
    db: DbSession,
) -> BuyResult:
    """
    Buy shares.

    Creates one lot and one BUY transaction in a single unit of work.

    Args:
        trade: Symbol, whole quantity, unit price and optional purchase date
        current_user: The authenticated owner (from dependency)
        db: Database session

    Returns:
        The new lot id and transaction id
    """
    return await ledger_service.buy(
        db,
        current_user.id,
        trade.symbol,
        trade.quantity,
        trade.unit_price,
        trade.purchase_date,
    )


@router.post("/sell", response_model=SellResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.LEDGER_RATE_LIMIT)
async def sell(
    request: Request,
    trade: SellRequest,
    current_user: CurrentActiveUser,
    db: DbSession,
) -> SellResult:
    """
    Sell shares, depleting lots first-in first-out.

    Returns:
        The transaction and sale ids, FIFO cost basis, realized profit/loss
        and per-lot depletions

    Raises:
        InsufficientHoldingsError: 409 if the position holds fewer shares
    """
    return await ledger_service.sell(
        db,
        current_user.id,
        trade.symbol,
        trade.quantity,
        trade.sell_price,
        trade.sell_date,
    )


@router.get("/positions", response_model=list[Position])
async def get_positions(current_user: CurrentActiveUser, db: DbSession) -> list[Position]:
    """Aggregated positions, one per symbol."""
    return await valuation_service.get_positions(db, current_user.id)


@router.get("/lots", response_model=list[LotResponse])
async def get_lots(
    current_user: CurrentActiveUser,
    db: DbSession,
    symbol: str | None = None,
) -> list[Lot]:
    """Active lots in FIFO order, optionally filtered by symbol."""
    return await valuation_service.get_lots(db, current_user.id, symbol)


@router.get("/valuation", response_model=PortfolioValuation)
async def get_valuation(
    current_user: CurrentActiveUser,
    db: DbSession,
    quote_provider: QuoteProviderDep,
) -> PortfolioValuation:
    """
    Value every position at current market prices.

    Symbols whose quote cannot be fetched are valued at purchase price and
    flagged with ``price_available: false``.
    """
    return await valuation_service.get_valuation(
        db, current_user.id, price_lookup=quote_provider.get_price
    )


@router.get("/sales", response_model=SalePage)
async def list_sales(
    current_user: CurrentActiveUser,
    db: DbSession,
    pagination: Pagination,
    symbol: Annotated[str | None, Query(max_length=20)] = None,
) -> SalePage:
    """Realized sales, newest first, with the total realized profit/loss."""
    return await transaction_query_service.list_sales(db, current_user.id, pagination, symbol)


@router.get("/search/{query}", response_model=list[SymbolMatch])
async def search_symbols(
    query: Annotated[
        str, Path(min_length=1, max_length=QuoteConstants.MAX_SEARCH_QUERY_LENGTH)
    ],
    current_user: CurrentActiveUser,
    quote_provider: QuoteProviderDep,
) -> list[SymbolMatch]:
    """
    Search equities by symbol or company name.

    Example:
        GET /api/v1/portfolio/search/emaar

    Raises:
        ValidationError: 400 for a blank query
        UpstreamUnavailableError: 503 if the quote provider cannot be reached
    """
    query = query.strip()
    if not query:
        raise ValidationError("Search query cannot be blank")
    logger.info(f"Symbol search for {query!r} by user {current_user.id}")
    return await quote_provider.search_symbols(query)
