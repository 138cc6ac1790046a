"""Tests for positions and portfolio valuation."""

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.exceptions import UpstreamUnavailableError
from portfolio_ledger.services import ledger_service, valuation_service
from portfolio_ledger.services.valuation_service import profit_loss_percent, resolve_prices
from tests.fakes import FakeQuoteProvider

DAY_ONE = datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture
async def portfolio(test_db: AsyncSession, owner_id: int) -> int:
    """AAPL 10 @ 100 and MSFT 5 @ 200: 2000 invested."""
    await ledger_service.buy(test_db, owner_id, "AAPL", 10, "100", DAY_ONE)
    await ledger_service.buy(test_db, owner_id, "MSFT", 5, "200", DAY_ONE + timedelta(days=1))
    return owner_id


@pytest.mark.unit
class TestProfitLossPercent:
    """Tests for profit_loss_percent."""

    def test_percent_of_investment(self):
        """Test that the percentage is relative to the investment."""
        assert profit_loss_percent(Decimal("50"), Decimal("2000")) == Decimal("2.50")

    def test_zero_investment_is_zero_percent(self):
        """Test that a zero investment never divides by zero."""
        assert profit_loss_percent(Decimal("0"), Decimal("0")) == Decimal("0.00")


@pytest.mark.unit
class TestResolvePrices:
    """Tests for resolve_prices."""

    async def test_prefetched_prices_win_over_lookup(self):
        """Test that pre-fetched prices are used and not looked up again."""
        provider = FakeQuoteProvider({"AAPL": "1", "MSFT": "190"})

        resolved = await resolve_prices(
            ["AAPL", "MSFT"], provider.get_price, prices={"aapl": 110}
        )

        assert resolved == {"AAPL": Decimal("110"), "MSFT": Decimal("190")}
        assert provider.calls == ["MSFT"]

    async def test_failed_lookup_maps_to_none(self, caplog):
        """Test that a failing symbol resolves to None and is logged."""
        provider = FakeQuoteProvider({"AAPL": "110"})

        resolved = await resolve_prices(["AAPL", "NOPE"], provider.get_price)

        assert resolved == {"AAPL": Decimal("110"), "NOPE": None}
        assert "NOPE" in caplog.text

    async def test_foreign_lookup_errors_are_isolated(self, caplog):
        """Test that any error from an injected lookup only affects its symbol."""

        async def flaky_lookup(symbol: str) -> Decimal:
            if symbol == "MSFT":
                raise ConnectionError("quote host unreachable")
            return Decimal("110")

        resolved = await resolve_prices(["AAPL", "MSFT"], flaky_lookup)

        assert resolved == {"AAPL": Decimal("110"), "MSFT": None}
        assert "ConnectionError" in caplog.text

    async def test_no_lookup_and_no_price_is_unavailable(self):
        """Test symbols without any price source resolve to None."""
        assert await resolve_prices(["AAPL"]) == {"AAPL": None}

    async def test_invalid_prefetched_price_is_unavailable(self):
        """Test a non-positive pre-fetched price is treated as unavailable."""
        assert await resolve_prices(["AAPL"], prices={"AAPL": "0"}) == {"AAPL": None}

    async def test_lookups_run_concurrently(self):
        """Test that all lookups are started before any completes."""
        started: list[str] = []

        async def slow_lookup(symbol: str) -> Decimal:
            started.append(symbol)
            await asyncio.sleep(0)
            assert len(started) == 3
            return Decimal("1")

        resolved = await resolve_prices(["A", "B", "C"], slow_lookup)

        assert set(resolved) == {"A", "B", "C"}


@pytest.mark.integration
class TestGetPositions:
    """Tests for valuation_service.get_positions."""

    async def test_positions_aggregate_lots(self, test_db: AsyncSession, owner_id: int):
        """Test that lots of one symbol aggregate with a weighted average price."""
        await ledger_service.buy(test_db, owner_id, "AAPL", 5, "10", DAY_ONE)
        await ledger_service.buy(test_db, owner_id, "AAPL", 5, "12", DAY_ONE + timedelta(days=1))
        await ledger_service.buy(test_db, owner_id, "MSFT", 2, "300", DAY_ONE)

        positions = await valuation_service.get_positions(test_db, owner_id)

        assert [p.symbol for p in positions] == ["AAPL", "MSFT"]
        aapl = positions[0]
        assert aapl.quantity == 10
        assert aapl.lot_count == 2
        assert aapl.total_cost == Decimal("110")
        assert aapl.average_purchase_price == Decimal("11.0000")

    async def test_positions_reflect_sells(self, test_db: AsyncSession, owner_id: int):
        """Test that positions only include remaining lots."""
        await ledger_service.buy(test_db, owner_id, "AAPL", 5, "10", DAY_ONE)
        await ledger_service.buy(test_db, owner_id, "AAPL", 5, "12", DAY_ONE + timedelta(days=1))
        await ledger_service.sell(test_db, owner_id, "AAPL", 7, "15")

        positions = await valuation_service.get_positions(test_db, owner_id)

        assert len(positions) == 1
        assert positions[0].quantity == 3
        assert positions[0].average_purchase_price == Decimal("12.0000")

    async def test_empty_portfolio(self, test_db: AsyncSession, owner_id: int):
        """Test that an owner without lots has no positions."""
        assert await valuation_service.get_positions(test_db, owner_id) == []


@pytest.mark.integration
class TestGetValuation:
    """Tests for valuation_service.get_valuation."""

    async def test_summary_with_prices(self, test_db: AsyncSession, portfolio: int):
        """Test AAPL 10@100 -> 110 and MSFT 5@200 -> 190 gives 2000/2050/50/2.5%."""
        valuation = await valuation_service.get_valuation(
            test_db, portfolio, prices={"AAPL": "110", "MSFT": "190"}
        )

        summary = valuation.summary
        assert summary.total_investment == Decimal("2000.00")
        assert summary.current_value == Decimal("2050.00")
        assert summary.total_profit_loss == Decimal("50.00")
        assert summary.total_profit_loss_percent == Decimal("2.50")
        assert summary.position_count == 2
        assert summary.priced_position_count == 2

        aapl, msft = valuation.positions
        assert aapl.profit_loss == Decimal("100.00")
        assert aapl.profit_loss_percent == Decimal("10.00")
        assert msft.profit_loss == Decimal("-50.00")
        assert msft.profit_loss_percent == Decimal("-5.00")

    async def test_lookup_is_used_for_missing_prices(
        self, test_db: AsyncSession, portfolio: int
    ):
        """Test that the injected lookup prices every symbol."""
        provider = FakeQuoteProvider({"AAPL": "110", "MSFT": "190"})

        valuation = await valuation_service.get_valuation(
            test_db, portfolio, price_lookup=provider.get_price
        )

        assert sorted(provider.calls) == ["AAPL", "MSFT"]
        assert valuation.summary.current_value == Decimal("2050.00")

    async def test_failed_quote_falls_back_to_purchase_price(
        self, test_db: AsyncSession, portfolio: int
    ):
        """Test one failing symbol is valued at cost and the rest still priced."""
        provider = FakeQuoteProvider({"AAPL": "110"})

        valuation = await valuation_service.get_valuation(
            test_db, portfolio, price_lookup=provider.get_price
        )

        aapl, msft = valuation.positions
        assert aapl.price_available is True
        assert msft.price_available is False
        assert msft.current_value == Decimal("1000.00")
        assert msft.profit_loss == Decimal("0.00")
        assert valuation.summary.current_value == Decimal("2100.00")
        assert valuation.summary.priced_position_count == 1

    async def test_unexpected_lookup_error_does_not_fail_valuation(
        self, test_db: AsyncSession, portfolio: int
    ):
        """Test a lookup raising a non-application error still yields a valuation."""

        async def lookup(symbol: str) -> Decimal:
            if symbol == "MSFT":
                raise ConnectionError("quote host unreachable")
            return Decimal("110")

        valuation = await valuation_service.get_valuation(test_db, portfolio, price_lookup=lookup)

        assert valuation.summary.priced_position_count == 1
        assert valuation.summary.current_value == Decimal("2100.00")

    async def test_fallback_values_each_lot_at_its_own_price(
        self, test_db: AsyncSession, owner_id: int
    ):
        """Test degraded valuation uses every lot's purchase price."""
        await ledger_service.buy(test_db, owner_id, "EMAAR.AE", 10, "8", DAY_ONE)
        await ledger_service.buy(
            test_db, owner_id, "EMAAR.AE", 10, "9", DAY_ONE + timedelta(days=1)
        )

        async def unavailable(symbol: str) -> Decimal:
            raise UpstreamUnavailableError(f"timeout for {symbol}")

        valuation = await valuation_service.get_valuation(
            test_db, owner_id, price_lookup=unavailable
        )

        (position,) = valuation.positions
        assert [lot.current_price for lot in position.lots] == [Decimal("8"), Decimal("9")]
        assert position.current_value == position.investment_value == Decimal("170.00")
        assert valuation.summary.total_profit_loss_percent == Decimal("0.00")

    async def test_empty_portfolio_summary_is_zero(self, test_db: AsyncSession, owner_id: int):
        """Test that an empty portfolio values to zero without dividing by zero."""
        valuation = await valuation_service.get_valuation(test_db, owner_id)

        assert valuation.positions == []
        assert valuation.summary.total_investment == Decimal("0.00")
        assert valuation.summary.total_profit_loss_percent == Decimal("0.00")

    async def test_lots_are_valued_individually(self, test_db: AsyncSession, owner_id: int):
        """Test per-lot values of a two-lot position."""
        await ledger_service.buy(test_db, owner_id, "AAPL", 5, "10", DAY_ONE)
        await ledger_service.buy(test_db, owner_id, "AAPL", 5, "12", DAY_ONE + timedelta(days=1))

        valuation = await valuation_service.get_valuation(test_db, owner_id, prices={"AAPL": 11})

        (position,) = valuation.positions
        assert [lot.profit_loss for lot in position.lots] == [Decimal("5.00"), Decimal("-5.00")]
        assert position.profit_loss == Decimal("0.00")
