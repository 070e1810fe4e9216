"""Tests for the Streamlit app module."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from fund_ledger.adapters.interface.streamlit import app
from fund_ledger.domain.constants import Currency
from fund_ledger.domain.models import (
    ClientLiquidity,
    ClientNetWorth,
    Fund,
    FundBalance,
    FundReturn,
    NetFlow,
    PortfolioReturns,
)
from fund_ledger.infrastructure import container
from fund_ledger.infrastructure.memory_repository import (
    InMemoryLedgerRepository,
)
from fund_ledger.infrastructure.settings import LedgerSettings

USD_SETTINGS = LedgerSettings(backend="memory")


def _fund_return(fund_id: int, name: str, twr: str, computable=True):
    return FundReturn(
        fund_id=fund_id,
        name=name,
        strategy=None,
        value_start=Decimal("1000"),
        value_end=Decimal("1100"),
        securities_value=Decimal("600"),
        cash_value=Decimal("500"),
        flows=NetFlow.zero(),
        twr=Decimal(twr),
        computable=computable,
        gain=Decimal("100"),
    )


def _returns() -> PortfolioReturns:
    return PortfolioReturns(
        active_funds=1,
        total_value=Decimal("2200"),
        net_flows=Decimal("0"),
        average_return=Decimal("10"),
        weighted_return=Decimal("10"),
        funds=[
            _fund_return(1, "Retiro", "10"),
            _fund_return(2, "Auto", "0", computable=False),
        ],
    )


def test_fetch_client_overview_reads_the_store(monkeypatch):
    """_fetch_client_overview should wire the store into the calculator."""
    store = InMemoryLedgerRepository()
    client = store.create_client("Ana")
    fund = store.create_fund(client.id, "Retiro")
    monkeypatch.setattr(app, "build_ledger_repository", lambda: store)
    monkeypatch.setattr(container, "get_app_logger", MagicMock)

    liquidity, worth, funds, balances = app._fetch_client_overview(client.id)

    assert liquidity.total_usd == Decimal("0")
    assert worth.net_worth_usd == Decimal("0")
    assert funds == [fund]
    assert balances[fund.id] == FundBalance.zero()


def test_load_returns_uses_fetch(monkeypatch):
    """The cached loader should delegate to _fetch_returns."""
    expected = _returns()
    monkeypatch.setattr(app, "_fetch_returns", lambda *args: expected)

    result = app._load_returns(99, date(2024, 1, 1), date(2024, 3, 31))

    assert result is expected


def test_report_settings_use_stored_exchange_rate(monkeypatch):
    """Without an env rate, ARS amounts use the latest stored quote."""
    store = InMemoryLedgerRepository()
    store.record_fx_rate(date(2024, 3, 1), Currency.ARS, Decimal("850"))
    store.record_fx_rate(date(2024, 5, 1), Currency.ARS, Decimal("900"))
    monkeypatch.setattr(
        app.LedgerSettings,
        "from_env",
        staticmethod(
            lambda: LedgerSettings(
                backend="memory",
                report_currency=Currency.ARS,
            )
        ),
    )
    monkeypatch.setattr(
        app,
        "build_ledger_repository",
        lambda settings=None: store,
    )

    settings = app._fetch_report_settings(date(2024, 4, 15))

    assert settings.report_fx_rate == Decimal("850")
    assert app._format_currency(Decimal("2"), settings) == "1,700.00 ARS"


def test_get_period_start() -> None:
    today = date(2024, 5, 17)

    assert app._get_period_start("YTD", today) == date(2024, 1, 1)
    assert app._get_period_start("QTD", today) == date(2024, 4, 1)
    assert app._get_period_start("MTD", today) == date(2024, 5, 1)
    assert app._get_period_start("Last 12 Months", today) == date(
        2023, 5, 18
    )


def test_format_currency_and_percent() -> None:
    ars = LedgerSettings(
        report_currency=Currency.ARS,
        report_fx_rate=Decimal("1000"),
    )

    assert app._format_currency(Decimal("1234.5"), USD_SETTINGS) == (
        "1,234.50 USD"
    )
    assert app._format_currency(Decimal("2"), ars) == "2,000.00 ARS"
    assert app._format_percent(Decimal("3.456")) == "+3.46%"
    assert app._format_percent(Decimal("-1")) == "-1.00%"


def test_chart_data_skips_funds_without_return() -> None:
    returns = _returns()

    twr_rows = app._prepare_returns_chart_data(returns)
    composition = app._prepare_composition_chart_data(returns, USD_SETTINGS)

    assert twr_rows == [
        {"fund": "Retiro", "twr": 10.0, "twr_label": "+10.00%"}
    ]
    assert len(composition) == 4
    assert composition[0]["part"] == "Securities"
    assert composition[1]["amount"] == 500.0


class _FakeColumn:
    def __init__(self, owner) -> None:
        self._owner = owner

    def metric(self, label, value):
        self._owner.metrics[label] = value

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeSidebar:
    def number_input(self, label, **kwargs):
        return kwargs["value"]

    def selectbox(self, label, options):
        return options[0]


class _FakeStreamlit:
    def __init__(self) -> None:
        self.sidebar = _FakeSidebar()
        self.metrics: dict[str, str] = {}
        self.captions: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.charts: list = []
        self.dataframe_payload = None
        self.config_kwargs = None

    def set_page_config(self, **kwargs):
        self.config_kwargs = kwargs

    def title(self, text: str):
        self.title_text = text

    def subheader(self, text: str):
        pass

    def info(self, text: str):
        pass

    def caption(self, text: str):
        self.captions.append(text)

    def warning(self, text: str):
        self.warnings.append(text)

    def error(self, text: str):
        self.errors.append(text)

    def columns(self, count: int):
        return [_FakeColumn(self) for _ in range(count)]

    def dataframe(self, data, **kwargs):
        self.dataframe_payload = (data, kwargs)

    def altair_chart(self, chart, **kwargs):
        self.charts.append(chart)


def _overview(funds):
    liquidity = ClientLiquidity(
        total_usd=Decimal("1000"),
        allocated_usd=Decimal("400"),
        available_usd=Decimal("600"),
    )
    worth = ClientNetWorth(
        available_usd=Decimal("600"),
        allocated_usd=Decimal("400"),
        invested_usd=Decimal("300"),
        net_worth_usd=Decimal("1300"),
    )
    balances = {
        fund.id: FundBalance(
            allocated_usd=Decimal("400"),
            invested_usd=Decimal("300"),
            recovered_usd=Decimal("0"),
            available_usd=Decimal("100"),
        )
        for fund in funds
    }
    return liquidity, worth, funds, balances


def _patch_main(monkeypatch, fake_st, funds):
    monkeypatch.setattr(app, "st", fake_st)
    monkeypatch.setattr(
        app,
        "_load_report_settings",
        lambda as_of: USD_SETTINGS,
    )
    monkeypatch.setattr(
        app,
        "_load_client_overview",
        lambda client_id: _overview(funds),
    )
    monkeypatch.setattr(app, "_load_returns", lambda *args: _returns())


def test_main_renders_balances_and_charts(monkeypatch):
    """main should render metrics, the fund table and both charts."""
    fake_st = _FakeStreamlit()
    funds = [Fund(id=1, client_id=1, name="Retiro")]
    _patch_main(monkeypatch, fake_st, funds)
    monkeypatch.setattr(
        app,
        "_check_altair_dependencies",
        lambda: (True, None),
    )

    app.main()

    assert fake_st.config_kwargs["page_title"] == "Fund Ledger"
    assert fake_st.metrics["Net Worth"] == "1,300.00 USD"
    table_data, kwargs = fake_st.dataframe_payload
    assert table_data[0]["Fund"] == "Retiro"
    assert table_data[0]["Available"] == "100.00 USD"
    assert kwargs["hide_index"] is True
    assert len(fake_st.charts) == 2
    assert fake_st.warnings == []


def test_main_warns_when_no_funds(monkeypatch):
    """main should warn the user when the client has no funds."""
    fake_st = _FakeStreamlit()
    _patch_main(monkeypatch, fake_st, [])

    app.main()

    assert fake_st.warnings == ["This client has no funds yet."]
    assert fake_st.dataframe_payload is None


def test_main_reports_missing_chart_dependencies(monkeypatch):
    fake_st = _FakeStreamlit()
    funds = [Fund(id=1, client_id=1, name="Retiro")]
    _patch_main(monkeypatch, fake_st, funds)
    monkeypatch.setattr(
        app,
        "_check_altair_dependencies",
        lambda: (False, "numpy is missing"),
    )

    app.main()

    assert fake_st.errors == ["Charts unavailable: numpy is missing"]
    assert fake_st.charts == []
