"""Ledger engine: buys and sells against the holdings store.

This service is the only writer of lots, transactions and sales. Each
operation is one unit of work opened with ``transactional()``: all of its
writes commit together or none do. Writes to one (owner, symbol) position are
serialized by ``position_locks`` and by row locks on the position's lots.

Sells deplete lots first-in first-out (purchase date, then lot id) and book
realized profit/loss against the FIFO-weighted average cost of the consumed
shares.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.constants import MoneyConstants, QuoteConstants
from portfolio_ledger.core.exceptions import InsufficientHoldingsError, ValidationError
from portfolio_ledger.db.session import transactional
from portfolio_ledger.models.lot import Lot
from portfolio_ledger.models.sale import Sale
from portfolio_ledger.models.transaction import Transaction, TransactionKind
from portfolio_ledger.repositories.lot import LotRepository
from portfolio_ledger.repositories.sale import SaleRepository
from portfolio_ledger.repositories.transaction import TransactionRepository
from portfolio_ledger.schemas.ledger import BuyResult, LotDepletion, SellResult
from portfolio_ledger.services.position_locks import PositionLockRegistry, position_locks

logger = logging.getLogger(__name__)

# Largest value a Numeric(15, 4) column holds
MAX_PRICE = Decimal("100000000000")


def normalize_symbol(symbol: str) -> str:
    """Strip and upper-case a symbol, rejecting blank or over-long ones."""
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValidationError("Symbol is required")
    symbol = symbol.strip().upper()
    if len(symbol) > QuoteConstants.MAX_SYMBOL_LENGTH:
        raise ValidationError(
            f"Symbol must be at most {QuoteConstants.MAX_SYMBOL_LENGTH} characters"
        )
    return symbol


def validate_quantity(quantity: int) -> int:
    """Quantities are whole, positive share counts."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number of shares")
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    return quantity


def validate_price(price: Decimal | int | float | str, field: str = "price") -> Decimal:
    """Convert ``price`` to a Decimal and check it is positive and storable."""
    try:
        value = price if isinstance(price, Decimal) else Decimal(str(price))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number") from e
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if value >= MAX_PRICE:
        raise ValidationError(f"{field} is too large")
    if value != value.quantize(MoneyConstants.PRICE_QUANTUM):
        raise ValidationError(f"{field} supports at most 4 decimal places")
    return value


def normalize_timestamp(value: datetime | None) -> datetime:
    """Default to now; interpret naive datetimes as UTC; store everything in UTC."""
    if value is None:
        return datetime.now(UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def plan_fifo_depletion(lots: Sequence[Lot], quantity: int) -> list[LotDepletion]:
    """Decide how much of each lot a sell of ``quantity`` consumes.

    Lots are walked oldest first (purchase date, then id). Each one gives
    ``min(remaining, lot.quantity)`` shares until nothing remains. The lots
    themselves are not modified.

    Raises:
        ValueError: If the lots hold fewer than ``quantity`` shares. Callers
            check sufficiency first and raise ``InsufficientHoldingsError``.

    Example:
        >>> plan = plan_fifo_depletion([lot_5_at_10, lot_5_at_12], 7)
        >>> [(d.quantity, d.remaining_quantity) for d in plan]
        [(5, 0), (2, 3)]
    """
    remaining = quantity
    plan: list[LotDepletion] = []
    for lot in sorted(lots, key=lambda lot: (lot.purchase_date, lot.id)):
        if remaining == 0:
            break
        consumed = min(remaining, lot.quantity)
        plan.append(
            LotDepletion(
                lot_id=lot.id,
                quantity=consumed,
                purchase_price=lot.purchase_price,
                remaining_quantity=lot.quantity - consumed,
            )
        )
        remaining -= consumed

    if remaining:
        raise ValueError(f"Lots cover only {quantity - remaining} of {quantity} shares")
    return plan


def realized_result(
    depletions: Sequence[LotDepletion],
    quantity: int,
    sell_price: Decimal,
) -> tuple[Decimal, Decimal]:
    """Return ``(cost_basis, profit_loss)`` for a planned sell.

    The cost basis is the FIFO-weighted average purchase price of the
    consumed shares: ``sum(consumed_i * price_i) / quantity``. Profit/loss is
    computed from the exact consumed cost, then rounded.
    """
    consumed_cost = sum((d.cost for d in depletions), MoneyConstants.ZERO)
    cost_basis = (consumed_cost / quantity).quantize(MoneyConstants.PRICE_QUANTUM)
    profit_loss = (sell_price * quantity - consumed_cost).quantize(MoneyConstants.AMOUNT_QUANTUM)
    return cost_basis, profit_loss


async def buy(
    db: AsyncSession,
    owner_id: int,
    symbol: str,
    quantity: int,
    unit_price: Decimal | int | float | str,
    purchase_date: datetime | None = None,
    *,
    locks: PositionLockRegistry = position_locks,
) -> BuyResult:
    """Buy shares: create one lot and one BUY transaction atomically.

    Args:
        db: Database session
        owner_id: Authenticated owner
        symbol: Ticker symbol (normalized to upper case)
        quantity: Whole shares, > 0
        unit_price: Price per share, > 0
        purchase_date: When the shares were bought (default: now)

    Returns:
        BuyResult with the new lot id and transaction id

    Raises:
        ValidationError: Invalid symbol, quantity or price
        PersistenceError: The unit of work could not commit (rolled back)
    """
    symbol = normalize_symbol(symbol)
    quantity = validate_quantity(quantity)
    price = validate_price(unit_price, "unit_price")
    purchased_at = normalize_timestamp(purchase_date)

    async with locks.hold(owner_id, symbol):
        async with transactional(db):
            lot = await LotRepository(Lot, db).create(
                obj_in={
                    "owner_id": owner_id,
                    "symbol": symbol,
                    "quantity": quantity,
                    "purchase_price": price,
                    "purchase_date": purchased_at,
                }
            )
            transaction = await TransactionRepository(Transaction, db).create(
                obj_in={
                    "owner_id": owner_id,
                    "symbol": symbol,
                    "quantity": quantity,
                    "price": price,
                    "kind": TransactionKind.BUY,
                    "transaction_date": purchased_at,
                }
            )

    logger.info(f"Owner {owner_id} bought {quantity} {symbol} @ {price} (lot {lot.id})")
    return BuyResult(lot_id=lot.id, transaction_id=transaction.id)


async def sell(
    db: AsyncSession,
    owner_id: int,
    symbol: str,
    quantity: int,
    sell_price: Decimal | int | float | str,
    sell_date: datetime | None = None,
    *,
    locks: PositionLockRegistry = position_locks,
) -> SellResult:
    """Sell shares, depleting the owner's lots first-in first-out.

    Steps, all inside one unit of work under the position lock:

    1. Load the position's lots with row locks and check they hold at least
       ``quantity`` shares.
    2. Deplete them FIFO: fully consumed lots are deleted, the last partly
       consumed lot is decremented.
    3. Append one SELL transaction and one sale carrying the FIFO-weighted
       cost basis and realized profit/loss.

    Args:
        db: Database session
        owner_id: Authenticated owner
        symbol: Ticker symbol (normalized to upper case)
        quantity: Whole shares to sell, > 0
        sell_price: Price per share received, > 0
        sell_date: When the shares were sold (default: now)

    Returns:
        SellResult with the transaction id, sale id, cost basis, realized
        profit/loss and the per-lot depletions

    Raises:
        ValidationError: Invalid symbol, quantity or price
        InsufficientHoldingsError: The position holds fewer shares than requested;
            nothing was written
        PersistenceError: The unit of work could not commit (rolled back)
    """
    symbol = normalize_symbol(symbol)
    quantity = validate_quantity(quantity)
    price = validate_price(sell_price, "sell_price")
    sold_at = normalize_timestamp(sell_date)

    async with locks.hold(owner_id, symbol):
        async with transactional(db):
            lot_repo = LotRepository(Lot, db)
            lots = await lot_repo.lock_position_lots(owner_id, symbol)

            available = sum(lot.quantity for lot in lots)
            if available < quantity:
                logger.warning(
                    f"Rejected sell of {quantity} {symbol} for owner {owner_id}: "
                    f"only {available} held"
                )
                raise InsufficientHoldingsError(
                    symbol=symbol, requested=quantity, available=available
                )

            depletions = plan_fifo_depletion(lots, quantity)
            lots_by_id = {lot.id: lot for lot in lots}
            for depletion in depletions:
                lot = lots_by_id[depletion.lot_id]
                if depletion.remaining_quantity == 0:
                    await lot_repo.delete(db_obj=lot)
                else:
                    lot.quantity = depletion.remaining_quantity
            await db.flush()

            transaction = await TransactionRepository(Transaction, db).create(
                obj_in={
                    "owner_id": owner_id,
                    "symbol": symbol,
                    "quantity": quantity,
                    "price": price,
                    "kind": TransactionKind.SELL,
                    "transaction_date": sold_at,
                }
            )

            cost_basis, profit_loss = realized_result(depletions, quantity, price)
            sale = await SaleRepository(Sale, db).create(
                obj_in={
                    "owner_id": owner_id,
                    "transaction_id": transaction.id,
                    "symbol": symbol,
                    "quantity": quantity,
                    "sell_price": price,
                    "cost_basis": cost_basis,
                    "profit_loss": profit_loss,
                    "sell_date": sold_at,
                }
            )

    logger.info(
        f"Owner {owner_id} sold {quantity} {symbol} @ {price} across {len(depletions)} lot(s), "
        f"cost basis {cost_basis}, P/L {profit_loss}"
    )
    return SellResult(
        transaction_id=transaction.id,
        sale_id=sale.id,
        symbol=symbol,
        quantity=quantity,
        sell_price=price,
        cost_basis=cost_basis,
        profit_loss=profit_loss,
        depletions=depletions,
    )
