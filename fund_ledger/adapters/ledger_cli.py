"""CLI adapter to record ledger events and print client reports.

This module wires the ledger use cases to the configured store and provides
a command-line entry point for local operations.
"""

import argparse
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from fund_ledger.domain.constants import AllocationKind, TradeSide
from fund_ledger.domain.errors import (
    LedgerValidationError,
    StoreUnavailableError,
)
from fund_ledger.domain.models import MutationResult, OutcomeStatus
from fund_ledger.domain.services.currency import to_native
from fund_ledger.infrastructure.container import (
    build_balance_use_case,
    build_ledger_repository,
    build_mutation_use_case,
    build_returns_use_case,
)
from fund_ledger.infrastructure.logging.logger import get_app_logger
from fund_ledger.infrastructure.settings import LedgerSettings
from fund_ledger.utils.decimal_utils import quantize_usd

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_UNAVAILABLE = 2


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value}") from exc


def _date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD."
        ) from exc


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the ledger CLI."""
    parser = argparse.ArgumentParser(
        prog="fund-ledger",
        description="Record ledger events and report client liquidity.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("schema", help="Create the ledger tables.")

    balances = commands.add_parser(
        "balances",
        help="Print client liquidity and fund balances.",
    )
    balances.add_argument("client_id", type=int)

    holdings = commands.add_parser("holdings", help="Print fund positions.")
    holdings.add_argument("client_id", type=int)
    holdings.add_argument("fund_id", type=int)
    holdings.add_argument("--as-of", type=_date_arg)

    returns = commands.add_parser("returns", help="Print fund returns.")
    returns.add_argument("client_id", type=int)
    returns.add_argument("--start", type=_date_arg, required=True)
    returns.add_argument("--end", type=_date_arg, required=True)

    rate = commands.add_parser(
        "rate",
        help="Record the daily exchange rate of a currency, per USD.",
    )
    rate.add_argument("currency")
    rate.add_argument("rate", type=_decimal_arg)
    rate.add_argument("--date", type=_date_arg)

    for name in ("deposit", "withdraw"):
        cash = commands.add_parser(name, help=f"Record a client {name}.")
        cash.add_argument("client_id", type=int)
        cash.add_argument("amount", type=_decimal_arg)
        _add_currency_args(cash)
        cash.add_argument("--comment")

    for kind in AllocationKind:
        allocation = commands.add_parser(
            kind.value,
            help=f"Record a manual {kind.value} between client and fund.",
        )
        allocation.add_argument("client_id", type=int)
        allocation.add_argument("fund_id", type=int)
        allocation.add_argument("amount", type=_decimal_arg)
        _add_currency_args(allocation)
        allocation.add_argument("--comment")

    for side in TradeSide:
        trade = commands.add_parser(
            side.value,
            help=f"Record a {side.value} of a security inside a fund.",
        )
        trade.add_argument("client_id", type=int)
        trade.add_argument("fund_id", type=int)
        trade.add_argument("quantity", type=int)
        trade.add_argument("unit_price", type=_decimal_arg)
        security = trade.add_mutually_exclusive_group(required=True)
        security.add_argument("--security-id", type=int)
        security.add_argument("--security")
        _add_currency_args(trade)

    return parser


def _add_currency_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--currency", default="USD")
    parser.add_argument("--fx-rate", type=_decimal_arg)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the ledger CLI.

    Args:
        argv: Command-line arguments, defaults to ``sys.argv[1:]``.

    Returns:
        int: Process exit code (0 ok, 1 rejected, 2 store unavailable).
    """
    args = build_parser().parse_args(argv)
    logger = get_app_logger()
    settings = LedgerSettings.from_env()
    repository = build_ledger_repository(settings=settings)
    try:
        if args.command == "schema":
            prepare = getattr(repository, "prepare_schema", None)
            if prepare is None:
                print(f"The {settings.backend} backend has no schema.")
                return EXIT_OK
            prepare()
            print("Ledger schema is ready.")
            return EXIT_OK
        if args.command == "rate":
            quote = repository.record_fx_rate(
                args.date or date.today(),
                args.currency,
                args.rate,
            )
            print(
                f"Recorded {quote.currency.value} rate {quote.rate} "
                f"per USD on {quote.date}"
            )
            return EXIT_OK
        if args.command == "balances":
            _print_balances(
                repository,
                args.client_id,
                settings.resolve_report_rate(repository),
            )
            return EXIT_OK
        if args.command == "holdings":
            _print_holdings(
                repository,
                args,
                settings.resolve_report_rate(repository, args.as_of),
            )
            return EXIT_OK
        if args.command == "returns":
            _print_returns(
                repository,
                args,
                settings.resolve_report_rate(repository, args.end),
            )
            return EXIT_OK
        return _report_mutation(_run_mutation(repository, args))
    except StoreUnavailableError as exc:
        logger.error(f"Ledger store unavailable: {exc.reason}")
        print(f"Store unavailable: {exc.reason}")
        return EXIT_UNAVAILABLE
    except LedgerValidationError as exc:
        print(f"Rejected ({exc.code}): {exc.message}")
        return EXIT_REJECTED
    except ValueError as exc:
        print(f"Rejected (invalid_request): {exc}")
        return EXIT_REJECTED


def _run_mutation(repository, args) -> MutationResult:
    applier = build_mutation_use_case(repository)
    if args.command == "deposit":
        return applier.apply_deposit(
            args.client_id,
            args.amount,
            currency=args.currency,
            fx_rate=args.fx_rate,
            comment=args.comment,
        )
    if args.command == "withdraw":
        return applier.apply_withdrawal(
            args.client_id,
            args.amount,
            currency=args.currency,
            fx_rate=args.fx_rate,
            comment=args.comment,
        )
    if args.command in {kind.value for kind in AllocationKind}:
        return applier.apply_allocation(
            args.client_id,
            args.fund_id,
            args.amount,
            currency=args.currency,
            fx_rate=args.fx_rate,
            kind=AllocationKind(args.command),
            comment=args.comment,
        )
    return applier.apply_trade(
        args.client_id,
        args.fund_id,
        TradeSide(args.command),
        args.quantity,
        args.unit_price,
        currency=args.currency,
        fx_rate=args.fx_rate,
        security_id=args.security_id,
        security_name=args.security,
    )


def _report_mutation(result: MutationResult) -> int:
    if result.status == OutcomeStatus.ACCEPTED:
        ids = ", ".join(str(event.id) for event in result.events)
        print(f"Accepted: recorded event(s) {ids}")
        return EXIT_OK
    if result.status == OutcomeStatus.UNAVAILABLE:
        print(f"Store unavailable: {result.message}")
        return EXIT_UNAVAILABLE
    message = f"Rejected ({result.error_code}): {result.message}"
    if result.validation is not None and result.validation.shortfall:
        message += f" [shortfall={quantize_usd(result.validation.shortfall)}]"
    print(message)
    return EXIT_REJECTED


def _print_balances(repository, client_id: int, settings) -> None:
    calculator = build_balance_use_case(repository)
    worth = calculator.client_net_worth(client_id)
    liquidity = calculator.client_liquidity(client_id)
    currency = settings.report_currency.value
    print(f"Client {client_id} ({currency})")
    print(
        f"  total={format_amount(liquidity.total_usd, settings)} "
        f"allocated={format_amount(liquidity.allocated_usd, settings)} "
        f"available={format_amount(liquidity.available_usd, settings)} "
        f"net_worth={format_amount(worth.net_worth_usd, settings)}"
    )
    funds = {fund.id: fund for fund in repository.list_funds(client_id)}
    for fund_id, balance in calculator.all_fund_balances(client_id).items():
        fund = funds.get(fund_id)
        name = fund.name if fund is not None else f"#{fund_id}"
        print(
            f"  fund {fund_id} {name}: "
            f"allocated={format_amount(balance.allocated_usd, settings)} "
            f"invested={format_amount(balance.invested_usd, settings)} "
            f"recovered={format_amount(balance.recovered_usd, settings)} "
            f"available={format_amount(balance.available_usd, settings)}"
        )


def _print_holdings(repository, args, settings) -> None:
    calculator = build_balance_use_case(repository)
    holdings = calculator.fund_holdings(
        args.client_id,
        args.fund_id,
        as_of=args.as_of,
    )
    if not holdings:
        print(f"Fund {args.fund_id} has no open positions.")
        return
    for holding in holdings:
        label = holding.security_name or f"#{holding.security_id}"
        print(
            f"  {label}: quantity={holding.quantity} "
            f"value={format_amount(holding.market_value_usd, settings)} "
            f"unrealized={format_amount(holding.unrealized_usd, settings)}"
        )


def _print_returns(repository, args, settings) -> None:
    calculator = build_returns_use_case(repository)
    result = calculator.portfolio_returns(args.client_id, args.start, args.end)
    print(f"Returns for client {args.client_id} ({args.start} to {args.end})")
    for fund in result.funds:
        twr = f"{fund.twr:.2f}%" if fund.computable else "n/a"
        print(
            f"  fund {fund.fund_id} {fund.name}: twr={twr} "
            f"value={format_amount(fund.value_end, settings)} "
            f"net_flow={format_amount(fund.flows.net, settings)}"
        )
    print(
        f"  total={format_amount(result.total_value, settings)} "
        f"average={result.average_return:.2f}% "
        f"weighted={result.weighted_return:.2f}%"
    )


def format_amount(amount_usd: Decimal, settings: LedgerSettings) -> str:
    """Render a USD amount in the configured report currency."""
    value = to_native(
        amount_usd,
        settings.report_currency,
        settings.report_fx_rate,
    )
    return f"{quantize_usd(value):,}"


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
