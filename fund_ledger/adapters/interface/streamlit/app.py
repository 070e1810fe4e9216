"""Streamlit dashboard entry point."""

from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal
import importlib

import streamlit as st
import altair as alt

from fund_ledger.domain.models import (
    ClientLiquidity,
    ClientNetWorth,
    Fund,
    FundBalance,
    PortfolioReturns,
)
from fund_ledger.domain.services.currency import to_native
from fund_ledger.infrastructure.container import (
    build_balance_use_case,
    build_ledger_repository,
    build_returns_use_case,
)
from fund_ledger.infrastructure.settings import LedgerSettings

PERIODS = ["YTD", "QTD", "MTD", "Last 12 Months"]


def _check_altair_dependencies() -> tuple[bool, str | None]:
    """Check that the numeric stack Altair serializes through is usable.

    Returns:
        tuple[bool, str | None]: Whether charts can render, and the reason
        when they cannot.
    """
    numpy = importlib.import_module("numpy")
    if not hasattr(numpy, "ndarray"):
        return False, "numpy is installed but incomplete (no ndarray)."
    pandas = importlib.import_module("pandas")
    if not hasattr(pandas, "Timestamp"):
        return False, "pandas is installed but incomplete (no Timestamp)."
    return True, None


def _fetch_client_overview(
    client_id: int,
) -> tuple[
    ClientLiquidity, ClientNetWorth, list[Fund], dict[int, FundBalance]
]:
    """Fetch liquidity, net worth and fund balances of a client."""
    repository = build_ledger_repository()
    calculator = build_balance_use_case(repository)
    return (
        calculator.client_liquidity(client_id),
        calculator.client_net_worth(client_id),
        repository.list_funds(client_id),
        calculator.all_fund_balances(client_id),
    )


@st.cache_data(show_spinner=False, ttl=60)
def _load_client_overview(client_id: int):
    """Cached wrapper around _fetch_client_overview."""
    return _fetch_client_overview(client_id)


def _fetch_returns(
    client_id: int,
    start_date: date,
    end_date: date,
) -> PortfolioReturns:
    """Fetch fund returns of a client over a period."""
    calculator = build_returns_use_case(build_ledger_repository())
    return calculator.portfolio_returns(client_id, start_date, end_date)


@st.cache_data(show_spinner=False, ttl=60)
def _load_returns(
    client_id: int,
    start_date: date,
    end_date: date,
) -> PortfolioReturns:
    """Cached wrapper around _fetch_returns."""
    return _fetch_returns(client_id, start_date, end_date)


def _fetch_report_settings(as_of: date) -> LedgerSettings:
    """Read settings and fill the report rate from the stored history."""
    settings = LedgerSettings.from_env()
    repository = build_ledger_repository(settings=settings)
    return settings.resolve_report_rate(repository, as_of)


@st.cache_data(show_spinner=False, ttl=60)
def _load_report_settings(as_of: date) -> LedgerSettings:
    """Cached wrapper around _fetch_report_settings."""
    return _fetch_report_settings(as_of)


def _format_currency(value: Decimal, settings: LedgerSettings) -> str:
    """Format a USD amount in the report currency for display."""
    amount = to_native(
        value,
        settings.report_currency,
        settings.report_fx_rate,
    )
    return f"{amount:,.2f} {settings.report_currency.value}"


def _format_percent(value: Decimal) -> str:
    """Format a percentage with an explicit sign."""
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}%"


def _get_period_start(period: str, today: date) -> date:
    """Return the start date for the selected period."""
    if period == "MTD":
        return date(today.year, today.month, 1)
    if period == "QTD":
        quarter = (today.month - 1) // 3
        return date(today.year, quarter * 3 + 1, 1)
    if period == "Last 12 Months":
        return today - timedelta(days=365)
    return date(today.year, 1, 1)


def _fund_balance_rows(
    funds: Sequence[Fund],
    balances: dict[int, FundBalance],
    settings: LedgerSettings,
) -> list[dict[str, str]]:
    """Build table rows for the fund balances section."""
    rows = []
    for fund in funds:
        balance = balances.get(fund.id, FundBalance.zero())
        rows.append(
            {
                "Fund": fund.name,
                "Strategy": fund.strategy or "-",
                "Allocated": _format_currency(balance.allocated_usd, settings),
                "Invested": _format_currency(balance.invested_usd, settings),
                "Recovered": _format_currency(balance.recovered_usd, settings),
                "Available": _format_currency(balance.available_usd, settings),
            }
        )
    return rows


def _prepare_returns_chart_data(
    returns: PortfolioReturns,
) -> list[dict[str, str | float]]:
    """Prepare Altair-ready rows, one per fund with a computable return."""
    return [
        {
            "fund": fund.name,
            "twr": float(fund.twr),
            "twr_label": _format_percent(fund.twr),
        }
        for fund in returns.funds
        if fund.computable
    ]


def _prepare_composition_chart_data(
    returns: PortfolioReturns,
    settings: LedgerSettings,
) -> list[dict[str, str | float]]:
    """Prepare stacked rows splitting each fund into securities and cash."""
    data: list[dict[str, str | float]] = []
    for fund in returns.funds:
        for part, value in (
            ("Securities", fund.securities_value),
            ("Cash", fund.cash_value),
        ):
            data.append(
                {
                    "fund": fund.name,
                    "part": part,
                    "amount": float(value),
                    "amount_label": _format_currency(value, settings),
                }
            )
    return data


def _render_returns_chart(returns: PortfolioReturns) -> None:
    """Render a bar chart of time-weighted returns per fund."""
    data = _prepare_returns_chart_data(returns)
    if not data:
        st.info("No fund has a computable return for this period.")
        return
    chart = alt.Chart(alt.Data(values=data)).mark_bar(
        cornerRadius=4,
    ).encode(
        x=alt.X("fund:N", title=None, sort="-y"),
        y=alt.Y("twr:Q", title="TWR (%)"),
        color=alt.condition(
            alt.datum.twr >= 0,
            alt.value("#2e7d32"),
            alt.value("#e76f51"),
        ),
        tooltip=[alt.Tooltip("fund:N"), alt.Tooltip("twr_label:N")],
    ).configure_view(stroke=None)
    st.subheader("Returns by Fund")
    st.altair_chart(chart, width="stretch")


def _render_composition_chart(
    returns: PortfolioReturns,
    settings: LedgerSettings,
) -> None:
    """Render a stacked bar chart of fund value by securities and cash."""
    data = _prepare_composition_chart_data(returns, settings)
    if not data:
        st.info("No funds to chart.")
        return
    chart = alt.Chart(alt.Data(values=data)).mark_bar().encode(
        x=alt.X("fund:N", title=None),
        y=alt.Y("amount:Q", title="Value (USD)", stack="zero"),
        color=alt.Color(
            "part:N",
            scale=alt.Scale(range=["#1b9aaa", "#f4a261"]),
            legend=alt.Legend(orient="bottom", title=None),
        ),
        tooltip=[
            alt.Tooltip("fund:N"),
            alt.Tooltip("part:N"),
            alt.Tooltip("amount_label:N"),
        ],
    ).configure_view(stroke=None)
    st.subheader("Fund Composition")
    st.altair_chart(chart, width="stretch")


def main() -> None:
    """Render the Streamlit app."""
    st.set_page_config(page_title="Fund Ledger", layout="wide")
    st.title("Fund Ledger")

    client_id = int(
        st.sidebar.number_input("Client id", min_value=1, value=1, step=1)
    )
    period = st.sidebar.selectbox("Period", PERIODS)
    today = date.today()
    settings = _load_report_settings(today)
    start_date = _get_period_start(period, today)

    liquidity, worth, funds, balances = _load_client_overview(client_id)
    total_col, allocated_col, available_col, worth_col = st.columns(4)
    total_col.metric("Total", _format_currency(liquidity.total_usd, settings))
    allocated_col.metric(
        "Allocated",
        _format_currency(liquidity.allocated_usd, settings),
    )
    available_col.metric(
        "Available",
        _format_currency(liquidity.available_usd, settings),
    )
    worth_col.metric(
        "Net Worth",
        _format_currency(worth.net_worth_usd, settings),
    )

    if not funds:
        st.warning("This client has no funds yet.")
        return

    st.subheader("Fund Balances")
    st.dataframe(
        _fund_balance_rows(funds, balances, settings),
        width="stretch",
        hide_index=True,
    )

    returns = _load_returns(client_id, start_date, today)
    st.caption(
        f"{returns.active_funds} funds, average return "
        f"{_format_percent(returns.average_return)}, weighted "
        f"{_format_percent(returns.weighted_return)} since {start_date}"
    )
    ok, message = _check_altair_dependencies()
    if not ok:
        st.error(f"Charts unavailable: {message}")
        return
    chart_left, chart_right = st.columns(2)
    with chart_left:
        _render_returns_chart(returns)
    with chart_right:
        _render_composition_chart(returns, settings)


if __name__ == "__main__":  # pragma: no cover
    main()
