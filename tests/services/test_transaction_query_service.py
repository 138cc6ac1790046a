"""Integration tests for transaction log queries and sale history."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.models.transaction import TransactionKind
from portfolio_ledger.models.user import User
from portfolio_ledger.schemas.transaction import PaginationParams, TransactionFilters
from portfolio_ledger.services import ledger_service, transaction_query_service
from portfolio_ledger.services.transaction_query_service import build_pagination_meta

pytestmark = pytest.mark.integration

DAY_ONE = datetime(2024, 1, 1, 15, 30, tzinfo=UTC)


@pytest.fixture
async def history(test_db: AsyncSession, owner_id: int) -> int:
    """Seven transactions over seven days across AAPL, MSFT and EMAAR.AE."""
    day = lambda n: DAY_ONE + timedelta(days=n)  # noqa: E731
    await ledger_service.buy(test_db, owner_id, "AAPL", 10, "100", day(0))
    await ledger_service.buy(test_db, owner_id, "MSFT", 5, "200", day(1))
    await ledger_service.buy(test_db, owner_id, "EMAAR.AE", 100, "8.25", day(2))
    await ledger_service.sell(test_db, owner_id, "AAPL", 4, "110", day(3))
    await ledger_service.buy(test_db, owner_id, "AAPL", 2, "105", day(4))
    await ledger_service.sell(test_db, owner_id, "MSFT", 5, "190", day(5))
    await ledger_service.sell(test_db, owner_id, "EMAAR.AE", 40, "9", day(6))
    return owner_id


class TestPaginationMeta:
    """Tests for build_pagination_meta."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("total", "limit", "pages"), [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (7, 3, 3)]
    )
    def test_total_pages_round_up(self, total, limit, pages):
        """Test that a partial last page counts as a page."""
        meta = build_pagination_meta(total, PaginationParams(page=1, limit=limit))
        assert meta.total_pages == pages
        assert meta.total == total


class TestQueryTransactions:
    """Tests for transaction_query_service.query_transactions."""

    async def test_newest_first_with_unfiltered_stats(self, test_db: AsyncSession, history: int):
        """Test ordering and stats over the whole log."""
        page = await transaction_query_service.query_transactions(
            test_db, history, TransactionFilters(), PaginationParams(page=1, limit=3)
        )

        assert [t.symbol for t in page.transactions] == ["EMAAR.AE", "MSFT", "AAPL"]
        assert page.pagination.total == 7
        assert page.pagination.total_pages == 3
        stats = page.stats
        assert stats.total_transactions == 7
        assert stats.total_buys == 4
        assert stats.total_sells == 3
        # 1000 + 1000 + 825 + 210
        assert stats.total_invested == Decimal("3035")
        # 440 + 950 + 360
        assert stats.total_sold == Decimal("1750")
        assert stats.net_position == Decimal("-1285")

    async def test_pages_sum_to_filtered_stats(self, test_db: AsyncSession, history: int):
        """Test that summing every page reproduces the unpaginated stats."""
        filters = TransactionFilters(symbol="a")
        first = await transaction_query_service.query_transactions(
            test_db, history, filters, PaginationParams(page=1, limit=2)
        )

        rows = []
        for page_number in range(1, first.pagination.total_pages + 1):
            page = await transaction_query_service.query_transactions(
                test_db, history, filters, PaginationParams(page=page_number, limit=2)
            )
            rows.extend(page.transactions)
            assert page.stats == first.stats

        invested = sum(t.total_amount for t in rows if t.kind == TransactionKind.BUY)
        sold = sum(t.total_amount for t in rows if t.kind == TransactionKind.SELL)
        assert len(rows) == first.stats.total_transactions == first.pagination.total
        assert invested == first.stats.total_invested
        assert sold == first.stats.total_sold
        assert len({t.id for t in rows}) == len(rows)

    async def test_symbol_filter_is_case_insensitive_substring(
        self, test_db: AsyncSession, history: int
    ):
        """Test that 'ema' matches EMAAR.AE only."""
        page = await transaction_query_service.query_transactions(
            test_db, history, TransactionFilters(symbol="ema"), PaginationParams()
        )

        assert {t.symbol for t in page.transactions} == {"EMAAR.AE"}
        assert page.stats.total_transactions == 2

    async def test_kind_filter(self, test_db: AsyncSession, history: int):
        """Test filtering by SELL."""
        page = await transaction_query_service.query_transactions(
            test_db, history, TransactionFilters(kind="sell"), PaginationParams()
        )

        assert all(t.kind == TransactionKind.SELL for t in page.transactions)
        assert page.stats.total_buys == 0
        assert page.stats.total_sells == 3
        assert page.stats.total_invested == Decimal("0")

    async def test_date_range_is_inclusive(self, test_db: AsyncSession, history: int):
        """Test that both ends of the date range are whole days."""
        filters = TransactionFilters(start_date=date(2024, 1, 2), end_date=date(2024, 1, 4))

        page = await transaction_query_service.query_transactions(
            test_db, history, filters, PaginationParams()
        )

        assert page.pagination.total == 3
        assert [t.transaction_date.day for t in page.transactions] == [4, 3, 2]

    async def test_page_past_the_end_is_empty(self, test_db: AsyncSession, history: int):
        """Test that a page beyond the last returns no rows but full stats."""
        page = await transaction_query_service.query_transactions(
            test_db, history, TransactionFilters(), PaginationParams(page=5, limit=10)
        )

        assert page.transactions == []
        assert page.stats.total_transactions == 7

    async def test_other_owners_are_invisible(
        self, test_db: AsyncSession, history: int, other_owner_id: int
    ):
        """Test that queries never return another owner's transactions."""
        page = await transaction_query_service.query_transactions(
            test_db, other_owner_id, TransactionFilters(), PaginationParams()
        )

        assert page.transactions == []
        assert page.pagination.total_pages == 0


class TestTransactionStats:
    """Tests for transaction_query_service.get_transaction_stats."""

    async def test_stats_match_paged_stats(self, test_db: AsyncSession, history: int):
        """Test standalone stats equal the stats attached to a page."""
        filters = TransactionFilters(start_date=date(2024, 1, 4))

        stats = await transaction_query_service.get_transaction_stats(test_db, history, filters)
        page = await transaction_query_service.query_transactions(
            test_db, history, filters, PaginationParams(limit=1)
        )

        assert stats == page.stats
        assert stats.total_transactions == 4
        assert stats.total_buys == 1
        assert stats.total_sells == 3


class TestPrintTransactions:
    """Tests for transaction_query_service.print_transactions."""

    async def test_report_contains_whole_filtered_set(
        self, test_db: AsyncSession, history: int, test_user: User
    ):
        """Test that printing bypasses pagination and carries report metadata."""
        filters = TransactionFilters(kind="BUY")

        report = await transaction_query_service.print_transactions(test_db, test_user, filters)

        assert len(report.transactions) == report.stats.total_transactions == 4
        assert report.owner.username == "testuser"
        assert report.owner.email == "test@example.com"
        assert report.filters.kind == TransactionKind.BUY
        assert report.generated_at.tzinfo is not None


class TestListSales:
    """Tests for transaction_query_service.list_sales."""

    async def test_sales_newest_first_with_total(self, test_db: AsyncSession, history: int):
        """Test sale history order and realized total."""
        page = await transaction_query_service.list_sales(
            test_db, history, PaginationParams(page=1, limit=2)
        )

        assert [s.symbol for s in page.sales] == ["EMAAR.AE", "MSFT"]
        assert page.pagination.total == 3
        # AAPL 4*(110-100)=40, MSFT 5*(190-200)=-50, EMAAR 40*(9-8.25)=30
        assert page.total_profit_loss == Decimal("20.00")

    async def test_sales_filtered_by_symbol(self, test_db: AsyncSession, history: int):
        """Test that the symbol filter narrows rows and total."""
        page = await transaction_query_service.list_sales(
            test_db, history, PaginationParams(), symbol="msft"
        )

        assert [s.symbol for s in page.sales] == ["MSFT"]
        assert page.sales[0].cost_basis == Decimal("200")
        assert page.total_profit_loss == Decimal("-50.00")
