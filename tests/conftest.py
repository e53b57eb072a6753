import os
import sys
from datetime import date, timedelta

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from journal_board.catalog import CATALOG
from journal_board.controller import DashboardController
from journal_board.data_controller import DataController
from journal_board.notifier import Notifier
from journal_board.session import EditSession
from journal_board.template_store import TemplateStore
from journal_board.trades import TradeFeed


class MemoryStore:
    """Dict-backed stand-in for DataController."""

    def __init__(self, records=None):
        self.records = {ns: [dict(r) for r in rs] for ns, rs in (records or {}).items()}
        self.puts = []

    def get(self, namespace):
        return [dict(r) for r in self.records.get(namespace, [])]

    def put(self, namespace, record):
        self.puts.append((namespace, record["id"]))
        table = self.records.setdefault(namespace, [])
        for i, r in enumerate(table):
            if r["id"] == record["id"]:
                table[i] = dict(record)
                return
        table.append(dict(record))


ACCOUNTS = [{"id": 1, "name": "Main", "initialBalance": 10000}]
STRATEGIES = [{"id": 7, "name": "Breakout"}]


def make_trades():
    today = date.today()
    rows = [
        (today, 150.0, "Win", "EURUSD"),
        (today, -50.0, "Loss", "GBPUSD"),
        (today - timedelta(days=1), 80.0, "Win", "EURUSD"),
        (today - timedelta(days=400), 30.0, "Win", "USDJPY"),
    ]
    trades = [
        {
            "id": i + 1,
            "date": d.isoformat(),
            "tradeTime": "10:00",
            "accountId": 1,
            "profitLoss": pnl,
            "outcome": outcome,
            "pair": pair,
            "strategyId": 7,
            "session": "London",
            "timeframe": "1H",
            "plannedRR": 2.0,
            "actualRR": 1.5,
            "emotions": ["Calm"],
            "mistakes": [],
        }
        for i, (d, pnl, outcome, pair) in enumerate(rows)
    ]
    # Another account's trade never reaches the widgets
    trades.append({"id": 99, "date": today.isoformat(), "accountId": 2, "profitLoss": 1000.0, "outcome": "Win"})
    return trades


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def db(tmp_path):
    controller = DataController(tmp_path / "journal.json")
    yield controller
    controller.close()


def build_dashboard(store, trades=None, confirm=None, timeout=0.2):
    template_store = TemplateStore(store)
    feed = TradeFeed()
    if trades is not None:
        feed.publish(trades)
    controller = DashboardController(
        template_store, feed, Notifier(), catalog=CATALOG, trade_ready_timeout=timeout
    )
    session = EditSession(controller, confirm=confirm)
    return controller, session
