"""Use case computing client liquidity and fund balances from history."""

from datetime import date
from decimal import Decimal

from fund_ledger.application.ports.ledger_repository import LedgerReaderPort
from fund_ledger.domain.models import (
    ClientLiquidity,
    ClientNetWorth,
    FundBalance,
    Holding,
)
from fund_ledger.domain.services.balances import (
    compute_client_liquidity,
    compute_client_net_worth,
    compute_fund_balance,
    compute_fund_balances,
)
from fund_ledger.domain.services.positions import (
    compute_holdings,
    compute_positions,
)
from fund_ledger.infrastructure.logging.logger import get_app_logger


class BalanceCalculator:
    """Recompute balances from the full event history on every call.

    Nothing is cached: the validation gate relies on every call reflecting
    the store as it is now.
    """

    def __init__(self, repository: LedgerReaderPort, logger=None) -> None:
        """Initialize the calculator.

        Args:
            repository: Port providing read access to the event collections.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._repository = repository
        self._logger = logger or get_app_logger()

    def client_liquidity(self, client_id: int) -> ClientLiquidity:
        """Return total, allocated, and available liquidity of a client.

        A client without history has all-zero liquidity.
        """
        movements = self._repository.list_cash_movements(client_id)
        allocations = self._repository.list_allocations(client_id)
        liquidity = compute_client_liquidity(movements, allocations)
        self._logger.debug(
            f"Liquidity for client {client_id}: total={liquidity.total_usd}, "
            f"allocated={liquidity.allocated_usd}, "
            f"available={liquidity.available_usd}"
        )
        return liquidity

    def fund_balance(self, client_id: int, fund_id: int) -> FundBalance:
        """Return the cash position of one fund of a client."""
        allocations = self._repository.list_allocations(
            client_id,
            fund_id=fund_id,
        )
        trades = self._repository.list_trades(
            client_id=client_id,
            fund_id=fund_id,
        )
        return compute_fund_balance(allocations, trades)

    def all_fund_balances(self, client_id: int) -> dict[int, FundBalance]:
        """Return the balance of every fund of a client.

        Reads each collection once for the whole client instead of once per
        fund.
        """
        funds = self._repository.list_funds(client_id)
        allocations = self._repository.list_allocations(client_id)
        trades = self._repository.list_trades(client_id=client_id)
        balances = compute_fund_balances(
            [fund.id for fund in funds],
            allocations,
            trades,
            logger=self._logger,
        )
        self._logger.info(
            f"Computed balances for {len(balances)} funds of client "
            f"{client_id} from {len(allocations)} allocations and "
            f"{len(trades)} trades"
        )
        return balances

    def client_net_worth(self, client_id: int) -> ClientNetWorth:
        """Return liquidity plus the cost of securities held in funds."""
        liquidity = self.client_liquidity(client_id)
        return compute_client_net_worth(
            liquidity,
            self.all_fund_balances(client_id),
        )

    def fund_holdings(
        self,
        client_id: int,
        fund_id: int,
        as_of: date | None = None,
    ) -> list[Holding]:
        """Return the valued open positions of a fund.

        Args:
            client_id: Owner of the fund.
            fund_id: Fund to inspect.
            as_of: Price date; latest prices when omitted.

        Returns:
            list[Holding]: Positions with quantity above zero.
        """
        trades = self._repository.list_trades(
            client_id=client_id,
            fund_id=fund_id,
            end_date=as_of,
        )
        positions = compute_positions(trades)
        security_ids = sorted(
            security_id
            for security_id, quantity in positions.items()
            if quantity > 0
        )
        if not security_ids:
            return []
        prices: dict[int, Decimal] = {
            row.security_id: row.price_usd
            for row in self._repository.fetch_latest_prices(
                security_ids,
                as_of=as_of,
            )
        }
        names = {
            security.id: security.name
            for security in self._repository.fetch_securities(security_ids)
        }
        missing = [sid for sid in security_ids if sid not in prices]
        if missing:
            self._logger.warning(
                f"Missing prices for securities {missing} in fund {fund_id}"
            )
        return compute_holdings(trades, prices, names)


__all__ = ["BalanceCalculator"]
