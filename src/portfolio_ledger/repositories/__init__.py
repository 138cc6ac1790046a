"""Repository layer for database operations.

Repositories centralize all SQL and never commit; services own the
transaction boundaries.

Repositories:
    - BaseRepository: Generic get/create/delete for any model
    - UserRepository: User lookups for authentication
    - LotRepository: Active lots, FIFO-ordered and lockable per position
    - TransactionRepository: Filtered pages and stats over the transaction log
    - SaleRepository: Realized sale history

Usage:
    >>> from portfolio_ledger.repositories import LotRepository
    >>> from portfolio_ledger.models.lot import Lot
    >>>
    >>> lots = await LotRepository(Lot, db).get_active_lots(owner_id, "AAPL")
"""

from portfolio_ledger.repositories.base import BaseRepository
from portfolio_ledger.repositories.lot import LotRepository, PositionAggregate
from portfolio_ledger.repositories.sale import SaleRepository
from portfolio_ledger.repositories.transaction import TransactionRepository
from portfolio_ledger.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "LotRepository",
    "PositionAggregate",
    "TransactionRepository",
    "SaleRepository",
]
