"""Use case computing time-weighted returns for a client's funds.

No valuation snapshots are stored: the value of a fund at any date is rebuilt
from events up to that date: open positions at the latest known price plus
cash, where cash is manual allocations net of purchases plus sale proceeds.
System allocations are left out of the valuation so proceeds count once.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from fund_ledger.application.ports.ledger_repository import LedgerReaderPort
from fund_ledger.domain.constants import AllocationOrigin
from fund_ledger.domain.models import (
    Allocation,
    Fund,
    FundReturn,
    NetFlow,
    PortfolioReturns,
    Trade,
)
from fund_ledger.domain.services.balances import compute_fund_balance
from fund_ledger.domain.services.positions import (
    compute_positions,
    value_positions,
)
from fund_ledger.domain.services.returns import (
    aggregate_fund_returns,
    compute_net_flow,
    twr,
)
from fund_ledger.infrastructure.logging.logger import get_app_logger
from fund_ledger.utils.decimal_utils import coerce_decimal


@dataclass(frozen=True)
class FundValuation:
    """Value of a fund at a date."""

    securities_value: Decimal
    cash_value: Decimal

    @property
    def total(self) -> Decimal:
        """Return securities plus cash."""
        return self.securities_value + self.cash_value


class ReturnCalculator:
    """Compute per-fund and portfolio returns over a period."""

    def __init__(self, repository: LedgerReaderPort, logger=None) -> None:
        """Initialize the calculator.

        Args:
            repository: Port providing read access to the event collections.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._repository = repository
        self._logger = logger or get_app_logger()

    def net_flow(
        self,
        client_id: int,
        fund_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> NetFlow:
        """Return manual flows of a fund within an inclusive date range."""
        allocations = self._repository.list_allocations(
            client_id,
            fund_id=fund_id,
            origin=AllocationOrigin.MANUAL,
            start_date=start_date,
            end_date=end_date,
        )
        return compute_net_flow(allocations, start_date, end_date)

    def portfolio_returns(
        self,
        client_id: int,
        start_date: date,
        end_date: date,
        start_values: Mapping[int, Decimal] | None = None,
    ) -> PortfolioReturns:
        """Return per-fund and aggregated returns for a period.

        Args:
            client_id: Client whose funds are reported.
            start_date: First day of the period.
            end_date: Last day of the period.
            start_values: Optional externally known start valuations per
                fund id, replacing the rebuilt ones.

        Returns:
            PortfolioReturns: Fund returns plus portfolio aggregates.

        Raises:
            ValueError: If ``start_date`` is after ``end_date``.
        """
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")
        funds = self._repository.list_funds(client_id)
        if not funds:
            return aggregate_fund_returns([])

        allocations = self._repository.list_allocations(client_id)
        trades = self._repository.list_trades(
            client_id=client_id,
            end_date=end_date,
        )
        start_valuations = self._valuate(
            funds,
            allocations,
            trades,
            start_date - timedelta(days=1),
        )
        end_valuations = self._valuate(funds, allocations, trades, end_date)

        fund_returns = []
        for fund in funds:
            flows = compute_net_flow(
                [a for a in allocations if a.fund_id == fund.id],
                start_date,
                end_date,
            )
            value_start = start_valuations[fund.id].total
            if start_values and fund.id in start_values:
                value_start = coerce_decimal(start_values[fund.id])
            end_valuation = end_valuations[fund.id]
            value_end = end_valuation.total
            fund_returns.append(
                FundReturn(
                    fund_id=fund.id,
                    name=fund.name,
                    strategy=fund.strategy,
                    value_start=value_start,
                    value_end=value_end,
                    securities_value=end_valuation.securities_value,
                    cash_value=end_valuation.cash_value,
                    flows=flows,
                    twr=twr(value_start, value_end, flows.net),
                    computable=value_start > 0,
                    gain=value_end - value_start - flows.net,
                )
            )

        result = aggregate_fund_returns(fund_returns)
        self._logger.info(
            f"Returns for client {client_id} from {start_date} to "
            f"{end_date}: funds={result.active_funds}, "
            f"total_value={result.total_value}, "
            f"average={result.average_return}"
        )
        return result

    def fund_return(
        self,
        client_id: int,
        fund_id: int,
        start_date: date,
        end_date: date,
        value_start=None,
    ) -> FundReturn | None:
        """Return the performance of one fund, or None if not the client's."""
        start_values = None
        if value_start is not None:
            start_values = {fund_id: coerce_decimal(value_start)}
        result = self.portfolio_returns(
            client_id,
            start_date,
            end_date,
            start_values=start_values,
        )
        for fund in result.funds:
            if fund.fund_id == fund_id:
                return fund
        return None

    def _valuate(
        self,
        funds: list[Fund],
        allocations: list[Allocation],
        trades: list[Trade],
        as_of: date,
    ) -> dict[int, FundValuation]:
        allocations_by_fund: dict[int, list[Allocation]] = {
            fund.id: [] for fund in funds
        }
        trades_by_fund: dict[int, list[Trade]] = {
            fund.id: [] for fund in funds
        }
        for allocation in allocations:
            if allocation.is_manual and allocation.timestamp.date() <= as_of:
                allocations_by_fund.setdefault(allocation.fund_id, []).append(
                    allocation
                )
        for trade in trades:
            if trade.timestamp.date() <= as_of:
                trades_by_fund.setdefault(trade.fund_id, []).append(trade)

        positions = {
            fund.id: compute_positions(trades_by_fund[fund.id])
            for fund in funds
        }
        security_ids = sorted(
            {
                security_id
                for fund_positions in positions.values()
                for security_id, quantity in fund_positions.items()
                if quantity > 0
            }
        )
        prices: dict[int, Decimal] = {}
        if security_ids:
            prices = {
                row.security_id: row.price_usd
                for row in self._repository.fetch_latest_prices(
                    security_ids,
                    as_of=as_of,
                )
            }

        return {
            fund.id: FundValuation(
                securities_value=value_positions(positions[fund.id], prices),
                cash_value=compute_fund_balance(
                    allocations_by_fund[fund.id],
                    trades_by_fund[fund.id],
                ).available_usd,
            )
            for fund in funds
        }


__all__ = ["FundValuation", "ReturnCalculator"]
