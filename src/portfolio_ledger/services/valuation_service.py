"""Valuation service: positions and their market value.

Read-only consumer of the holdings store. Prices come from an optional
pre-fetched mapping and an injected async lookup; a symbol whose price
cannot be resolved is valued at its lots' purchase prices so one failed
quote never fails the whole valuation.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from decimal import Decimal
from itertools import groupby

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.constants import MoneyConstants
from portfolio_ledger.core.exceptions import UpstreamUnavailableError
from portfolio_ledger.db.session import read_only_transaction
from portfolio_ledger.models.lot import Lot
from portfolio_ledger.repositories.lot import LotRepository
from portfolio_ledger.schemas.lot import Position
from portfolio_ledger.schemas.valuation import (
    LotValuation,
    PortfolioValuation,
    PositionValuation,
    ValuationSummary,
)
from portfolio_ledger.services.quote_service import to_price

logger = logging.getLogger(__name__)

PriceLookup = Callable[[str], Awaitable[Decimal]]

ZERO = MoneyConstants.ZERO


def _amount(value: Decimal) -> Decimal:
    return value.quantize(MoneyConstants.AMOUNT_QUANTUM)


def profit_loss_percent(profit_loss: Decimal, investment_value: Decimal) -> Decimal:
    """``profit_loss / investment_value * 100``, or 0 for a zero investment."""
    if investment_value == 0:
        return ZERO.quantize(MoneyConstants.PERCENT_QUANTUM)
    return (profit_loss / investment_value * MoneyConstants.HUNDRED).quantize(
        MoneyConstants.PERCENT_QUANTUM
    )


async def get_positions(db: AsyncSession, owner_id: int) -> list[Position]:
    """Aggregate the owner's active lots into one position per symbol.

    Returns:
        Positions ordered by symbol with the weighted-average purchase price
    """
    async with read_only_transaction(db):
        aggregates = await LotRepository(Lot, db).get_position_aggregates(owner_id)

    return [
        Position(
            symbol=agg.symbol,
            quantity=agg.quantity,
            average_purchase_price=(agg.total_cost / agg.quantity).quantize(
                MoneyConstants.PRICE_QUANTUM
            ),
            total_cost=agg.total_cost,
            lot_count=agg.lot_count,
            first_purchase_date=agg.first_purchase_date,
        )
        for agg in aggregates
    ]


async def _lookup(symbol: str, price_lookup: PriceLookup) -> Decimal | None:
    try:
        return to_price(await price_lookup(symbol), symbol)
    except UpstreamUnavailableError as e:
        logger.warning(f"Price unavailable for {symbol}, valuing at purchase price: {e.detail}")
        return None
    except Exception as e:
        # Injected lookups may fail with their own error types
        logger.warning(
            f"Price lookup for {symbol} failed, valuing at purchase price: "
            f"{type(e).__name__}: {e}"
        )
        return None


async def resolve_prices(
    symbols: Iterable[str],
    price_lookup: PriceLookup | None = None,
    prices: Mapping[str, Decimal | float | str] | None = None,
) -> dict[str, Decimal | None]:
    """Resolve a current price for every symbol.

    Pre-fetched ``prices`` win; remaining symbols are looked up concurrently.
    A symbol maps to None when its lookup failed or no lookup was given.
    """
    known = {symbol.upper(): value for symbol, value in (prices or {}).items()}
    resolved: dict[str, Decimal | None] = {}
    pending: list[str] = []
    for symbol in symbols:
        if symbol in known:
            try:
                resolved[symbol] = to_price(known[symbol], symbol)
            except UpstreamUnavailableError as e:
                logger.warning(f"Ignoring pre-fetched price for {symbol}: {e.detail}")
                resolved[symbol] = None
        elif price_lookup is not None:
            pending.append(symbol)
        else:
            resolved[symbol] = None

    if pending:
        results = await asyncio.gather(*(_lookup(symbol, price_lookup) for symbol in pending))
        resolved.update(zip(pending, results))
    return resolved


def value_lot(lot: Lot, current_price: Decimal) -> LotValuation:
    """Market value of one lot at ``current_price``."""
    investment_value = lot.purchase_price * lot.quantity
    current_value = current_price * lot.quantity
    profit_loss = current_value - investment_value
    return LotValuation(
        lot_id=lot.id,
        quantity=lot.quantity,
        purchase_price=lot.purchase_price,
        current_price=current_price,
        investment_value=_amount(investment_value),
        current_value=_amount(current_value),
        profit_loss=_amount(profit_loss),
        profit_loss_percent=profit_loss_percent(profit_loss, investment_value),
    )


def value_position(
    symbol: str,
    lots: Sequence[Lot],
    current_price: Decimal | None,
) -> PositionValuation:
    """Market value of one position.

    Without a price every lot is valued at its own purchase price, so the
    position's profit/loss is zero and ``price_available`` is False.
    """
    quantity = sum(lot.quantity for lot in lots)
    investment_value = sum((lot.purchase_price * lot.quantity for lot in lots), ZERO)
    if current_price is None:
        current_value = investment_value
    else:
        current_value = current_price * quantity
    profit_loss = current_value - investment_value
    average_price = (investment_value / quantity).quantize(MoneyConstants.PRICE_QUANTUM)

    return PositionValuation(
        symbol=symbol,
        quantity=quantity,
        average_purchase_price=average_price,
        current_price=current_price if current_price is not None else average_price,
        investment_value=_amount(investment_value),
        current_value=_amount(current_value),
        profit_loss=_amount(profit_loss),
        profit_loss_percent=profit_loss_percent(profit_loss, investment_value),
        price_available=current_price is not None,
        lots=[
            value_lot(lot, current_price if current_price is not None else lot.purchase_price)
            for lot in lots
        ],
    )


def summarize(positions: Sequence[PositionValuation]) -> ValuationSummary:
    """Totals over all positions."""
    total_investment = sum((p.investment_value for p in positions), ZERO)
    current_value = sum((p.current_value for p in positions), ZERO)
    total_profit_loss = current_value - total_investment
    return ValuationSummary(
        total_investment=_amount(total_investment),
        current_value=_amount(current_value),
        total_profit_loss=_amount(total_profit_loss),
        total_profit_loss_percent=profit_loss_percent(total_profit_loss, total_investment),
        position_count=len(positions),
        priced_position_count=sum(1 for p in positions if p.price_available),
    )


async def get_valuation(
    db: AsyncSession,
    owner_id: int,
    price_lookup: PriceLookup | None = None,
    prices: Mapping[str, Decimal | float | str] | None = None,
) -> PortfolioValuation:
    """Value every position of the owner at current prices.

    Args:
        db: Database session
        owner_id: Authenticated owner
        price_lookup: Async ``symbol -> price`` callable; a symbol whose lookup
            raises is valued at purchase price
        prices: Optional pre-fetched ``symbol -> price`` mapping

    Returns:
        Per-position (and per-lot) values plus the portfolio summary

    Example:
        >>> valuation = await get_valuation(db, user.id, prices={"AAPL": 110, "MSFT": 190})
        >>> valuation.summary.total_profit_loss
        Decimal('50.00')
    """
    async with read_only_transaction(db):
        lots = await LotRepository(Lot, db).get_active_lots(owner_id)

    grouped = {symbol: list(group) for symbol, group in groupby(lots, key=lambda lot: lot.symbol)}
    current_prices = await resolve_prices(grouped, price_lookup, prices)

    positions = [
        value_position(symbol, symbol_lots, current_prices.get(symbol))
        for symbol, symbol_lots in grouped.items()
    ]
    return PortfolioValuation(positions=positions, summary=summarize(positions))


async def get_lots(db: AsyncSession, owner_id: int, symbol: str | None = None) -> list[Lot]:
    """Active lots of the owner in FIFO order, optionally for one symbol."""
    symbol = symbol.strip().upper() or None if symbol else None
    async with read_only_transaction(db):
        return await LotRepository(Lot, db).get_active_lots(owner_id, symbol)
