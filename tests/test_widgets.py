import pytest

from journal_board import widgets
from journal_board.catalog import CATALOG, WidgetId
from journal_board.models import Account, Section, Strategy, Trade
from journal_board.view import ViewNode

ACCOUNTS = [Account(id="1", initialBalance=1000)]
STRATEGIES = [Strategy(id="7", name="Breakout")]


def trades():
    rows = [
        ("2024-03-01", "09:00", 100.0, "Win"),
        ("2024-03-01", "11:00", -40.0, "Loss"),
        ("2024-03-04", "10:00", -30.0, "Loss"),
        ("2024-03-05", "10:00", 50.0, "Win"),
        ("2024-03-05", "12:00", 20.0, "Win"),
    ]
    return [
        Trade(date=d, tradeTime=tm, accountId="1", profitLoss=pnl, outcome=o, pair="EURUSD", strategyId="7")
        for d, tm, pnl, o in rows
    ]


def paint(widget_id, trade_list=None, settings=None, accounts=ACCOUNTS):
    target = ViewNode(kind="content")
    CATALOG.require(widget_id).render(
        widget_id, target, trades() if trade_list is None else trade_list,
        STRATEGIES, "1", accounts, settings or {},
    )
    return target.attrs


def test_catalog_sections():
    assert len(CATALOG) == len(WidgetId)
    assert [s.id.value for s in CATALOG.for_section(Section.METRICS)] == [
        "account-balance", "trade-win", "daily-win", "current-streak", "summary",
    ]
    assert len(CATALOG.for_section(Section.TABLES)) == 3
    assert len(CATALOG.for_section(Section.CHARTS)) == 16
    assert "balance" in CATALOG
    assert CATALOG.get("nope") is None


def test_account_balance():
    attrs = paint("account-balance", settings={"format": "currency-short"})

    assert attrs["value"] == 1100.0
    assert attrs["display"] == "$1,100"
    assert attrs["pnl_display"] == "+$100.00"


def test_account_balance_requires_account():
    with pytest.raises(ValueError):
        paint("account-balance", accounts=[])


def test_trade_win_formats():
    assert paint("trade-win")["display"] == "60.00%"
    assert paint("trade-win", settings={"format": "percentage-short"})["display"] == "60%"
    assert paint("trade-win", trade_list=[])["value"] == 0.0


def test_streaks():
    attrs = paint("current-streak")

    assert attrs["trade_streak"] == {"type": "win", "length": 2}
    assert attrs["day_streak"] == {"type": "win", "length": 1}


def test_recent_trades_newest_first_with_limit():
    attrs = paint("recent-trades", settings={"limit": 2})

    assert [(r["date"], r["profit_loss"]) for r in attrs["rows"]] == [("2024-03-05", 20.0), ("2024-03-05", 50.0)]
    assert attrs["rows"][0]["strategy"] == "Breakout"


def test_trading_calendar_settings():
    attrs = paint("trading-calendar")

    assert attrs["month"] == "2024-03"
    assert attrs["days_in_month"] == 31
    assert attrs["days"][1] == {"pnl": 60.0, "trades": 2, "wins": 1}
    assert "weeks" in attrs

    hidden = paint("trading-calendar", settings={"showWeeklyStats": False, "showTradeDetails": False})
    assert hidden["days"][5] == {"pnl": 70.0}
    assert "weeks" not in hidden


def test_balance_and_drawdown_series():
    balance = paint("balance")["chart"]
    drawdown = paint("drawdown")["chart"]

    assert balance["type"] == "line"
    assert balance["values"] == [1100.0, 1060.0, 1030.0, 1080.0, 1100.0]
    assert drawdown["values"] == [0.0, -4.0, -7.0, -2.0, 0.0]


def test_chart_settings_override_colors():
    chart = paint("daily-net-pnl", settings={"dotColor": "#ff0000", "yGrid": True})["chart"]

    assert chart["type"] == "bar"
    assert chart["labels"] == ["2024-03-01", "2024-03-04", "2024-03-05"]
    assert chart["values"] == [60.0, -30.0, 70.0]
    assert chart["colors"]["dotColor"] == "#ff0000"
    assert chart["y_grid"] is True


def test_strategy_pnl_uses_strategy_names():
    chart = paint("strategyPnL")["chart"]

    assert chart["labels"] == ["Breakout"]
    assert chart["values"] == [100.0]


def test_every_chart_renders_without_trades():
    for spec in CATALOG.for_section(Section.CHARTS):
        attrs = paint(spec.id.value, trade_list=[])
        assert len(attrs["chart"]["labels"]) == len(attrs["chart"]["values"])
