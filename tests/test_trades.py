import asyncio
from datetime import date

import pytest

from journal_board.errors import ConfigurationError
from journal_board.models import DateFilter, DateFilterType, Trade
from journal_board.trades import (
    TradeFeed,
    apply_date_filter,
    coerce_trades,
    date_range_for_filter,
    filter_by_account,
    index_trades_by_month,
)

TODAY = date(2024, 3, 15)


def trade(day, account="1", pnl=10.0, outcome="Win"):
    return Trade(date=day, accountId=account, profitLoss=pnl, outcome=outcome)


@pytest.mark.parametrize("kind,start", [
    (DateFilterType.CURRENT_MONTH, date(2024, 3, 1)),
    (DateFilterType.LAST_3_DAYS, date(2024, 3, 13)),
    (DateFilterType.LAST_7_DAYS, date(2024, 3, 9)),
    (DateFilterType.LAST_15_DAYS, date(2024, 3, 1)),
    (DateFilterType.LAST_3_MONTHS, date(2023, 12, 1)),
    (DateFilterType.LAST_6_MONTHS, date(2023, 9, 1)),
    (DateFilterType.YEAR_TO_DATE, date(2024, 1, 1)),
])
def test_date_range_for_filter(kind, start):
    assert date_range_for_filter(DateFilter(type=kind), TODAY) == (start, TODAY)


def test_all_time_and_custom_ranges():
    assert date_range_for_filter(DateFilter(type=DateFilterType.ALL_TIME), TODAY) == (None, None)
    custom = DateFilter(type="custom", startDate="2024-01-05", endDate="2024-01-10")
    assert date_range_for_filter(custom, TODAY) == (date(2024, 1, 5), date(2024, 1, 10))


def test_apply_date_filter_is_inclusive_and_skips_bad_dates():
    trades = [trade("2024-03-13"), trade("2024-03-12"), trade("2024-03-15"), trade("15/03/2024")]

    kept = apply_date_filter(trades, DateFilter(type=DateFilterType.LAST_3_DAYS), TODAY)

    assert [t.date for t in kept] == ["2024-03-13", "2024-03-15"]


def test_index_trades_by_month():
    trades = [trade("2024-02-28"), trade("2024-03-01"), trade("2024-03-15"), trade("not-a-date")]

    indexed = index_trades_by_month(trades)

    assert sorted(indexed) == ["2024-02", "2024-03"]
    assert len(indexed["2024-03"]) == 2


def test_coerce_trades_skips_invalid_records():
    raw = [
        {"date": "2024-03-01", "accountId": 1, "profitLoss": "12.5"},
        {"accountId": 1},
        {"date": "2024-03-02", "accountId": "2", "profitLoss": None, "customField": "kept"},
    ]

    trades = coerce_trades(raw)

    assert len(trades) == 2
    assert trades[0].account_id == "1"
    assert trades[0].profit_loss == 12.5
    assert trades[1].profit_loss == 0.0
    assert trades[1].customField == "kept"
    assert [t.date for t in filter_by_account(trades, "2")] == ["2024-03-02"]


def test_trade_feed_waits_for_publish():
    async def scenario():
        feed = TradeFeed()
        asyncio.get_running_loop().call_later(0.01, feed.publish, [{"date": "2024-03-01"}])
        return await feed.wait(1.0)

    assert asyncio.run(scenario()) == [{"date": "2024-03-01"}]


def test_trade_feed_timeout_and_invalid_data():
    feed = TradeFeed()

    with pytest.raises(ConfigurationError):
        asyncio.run(feed.wait(0.01))
    with pytest.raises(ConfigurationError):
        feed.publish({"not": "a list"})
    assert not feed.ready
