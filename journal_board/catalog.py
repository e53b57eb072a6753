"""
Widget catalog: static registry of every widget the dashboard can place.
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from journal_board import widgets
from journal_board.errors import NotFound
from journal_board.models import Section

RenderFn = Callable[..., None]


class WidgetId(str, Enum):
    ACCOUNT_BALANCE = "account-balance"
    TRADE_WIN = "trade-win"
    DAILY_WIN = "daily-win"
    CURRENT_STREAK = "current-streak"
    SUMMARY = "summary"
    RECENT_TRADES = "recent-trades"
    TRADING_CALENDAR = "trading-calendar"
    YEARLY_OVERVIEW = "yearly-overview"
    BALANCE = "balance"
    DRAWDOWN = "drawdown"
    DAILY_NET_PNL = "daily-net-pnl"
    NET_CUMULATIVE = "net-cumulative"
    CUMULATIVE_DAILY_NET = "cumulative-daily-net"
    TRADE_COUNT = "trade-count"
    AVERAGE_RRR = "averageRRR"
    WIN_RATE_OVER_TIME = "winRateOverTime"
    STRATEGY_PNL = "strategyPnL"
    SESSION_PNL = "sessionPnL"
    TIMEFRAME_DISTRIBUTION = "timeframeDistribution"
    PNL_BY_WEEKDAY = "pnlByWeekday"
    HOLD_TIME_ANALYSIS = "holdTimeAnalysis"
    PNL_BY_PAIR = "pnlByPair"
    EMOTION_PERFORMANCE = "emotion-performance"
    MISTAKE_ANALYSIS = "mistake-analysis"


# Widgets that always see the account's full history, not the date-filtered slice.
ALL_HISTORY_WIDGETS = frozenset({
    WidgetId.CURRENT_STREAK,
    WidgetId.DAILY_WIN,
    WidgetId.TRADING_CALENDAR,
    WidgetId.YEARLY_OVERVIEW,
})


class WidgetSpec(BaseModel):
    """Immutable description of a widget."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: WidgetId
    section: Section
    title: str
    settings_schema: Dict[str, Any] = Field(default_factory=dict)
    render: RenderFn


class WidgetCatalog:
    """Lookup of WidgetSpec by widget id."""

    def __init__(self, specs: Iterable[WidgetSpec]):
        self._specs: Dict[str, WidgetSpec] = {}
        for spec in specs:
            self._specs[spec.id.value] = spec

    def get(self, widget_id: str) -> Optional[WidgetSpec]:
        return self._specs.get(widget_id)

    def require(self, widget_id: str) -> WidgetSpec:
        spec = self.get(widget_id)
        if spec is None:
            raise NotFound(f"Widget not found: {widget_id}")
        return spec

    def for_section(self, section: Section) -> List[WidgetSpec]:
        return [s for s in self._specs.values() if s.section == section]

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._specs

    def __iter__(self) -> Iterator[WidgetSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


_COLOR = {"color": ["green", "red"]}


def _chart(widget_id: WidgetId, title: str, chart_key: str, **schema) -> WidgetSpec:
    return WidgetSpec(
        id=widget_id,
        section=Section.CHARTS,
        title=title,
        settings_schema={**_COLOR, **schema},
        render=widgets.chart_renderer(chart_key),
    )


CATALOG = WidgetCatalog([
    WidgetSpec(id=WidgetId.ACCOUNT_BALANCE, section=Section.METRICS, title="Account Balance",
               settings_schema={"format": ["currency", "currency-short"], **_COLOR},
               render=widgets.render_account_balance),
    WidgetSpec(id=WidgetId.TRADE_WIN, section=Section.METRICS, title="Trade Win %",
               settings_schema={"format": ["percentage", "percentage-short"], **_COLOR},
               render=widgets.render_trade_win),
    WidgetSpec(id=WidgetId.DAILY_WIN, section=Section.METRICS, title="Daily Win %",
               settings_schema={"format": ["percentage", "percentage-short"], **_COLOR},
               render=widgets.render_daily_win),
    WidgetSpec(id=WidgetId.CURRENT_STREAK, section=Section.METRICS, title="Current Streak",
               settings_schema=dict(_COLOR), render=widgets.render_current_streak),
    WidgetSpec(id=WidgetId.SUMMARY, section=Section.METRICS, title="Trade Summary",
               settings_schema={"format": ["number", "number-short"], **_COLOR},
               render=widgets.render_summary),
    WidgetSpec(id=WidgetId.RECENT_TRADES, section=Section.TABLES, title="Recent Trades",
               settings_schema=dict(_COLOR), render=widgets.render_recent_trades),
    WidgetSpec(id=WidgetId.TRADING_CALENDAR, section=Section.TABLES, title="Trading Calendar",
               settings_schema=dict(_COLOR), render=widgets.render_trading_calendar),
    WidgetSpec(id=WidgetId.YEARLY_OVERVIEW, section=Section.TABLES, title="Yearly Overview",
               settings_schema=dict(_COLOR), render=widgets.render_yearly_overview),
    _chart(WidgetId.BALANCE, "Balance", "balance"),
    _chart(WidgetId.DRAWDOWN, "Drawdown", "drawdown"),
    _chart(WidgetId.DAILY_NET_PNL, "Daily Net P&L", "dailyNetPnL"),
    _chart(WidgetId.NET_CUMULATIVE, "Net Cumulative", "netCumulative", grid=True),
    _chart(WidgetId.CUMULATIVE_DAILY_NET, "Cumulative Daily Net", "cumulativeDailyNet"),
    _chart(WidgetId.TRADE_COUNT, "Daily Trade Count", "tradeCount"),
    _chart(WidgetId.AVERAGE_RRR, "Average RRR per Day", "averageRRR"),
    _chart(WidgetId.WIN_RATE_OVER_TIME, "Win Rate Over Time", "winRateOverTime"),
    _chart(WidgetId.STRATEGY_PNL, "Strategy Performance", "strategyPnL"),
    _chart(WidgetId.SESSION_PNL, "Session-Based PnL", "sessionPnL"),
    _chart(WidgetId.TIMEFRAME_DISTRIBUTION, "Timeframe Distribution", "timeframeDistribution"),
    _chart(WidgetId.PNL_BY_WEEKDAY, "PnL by Weekday", "pnlByWeekday"),
    _chart(WidgetId.HOLD_TIME_ANALYSIS, "Hold Time Analysis", "holdTimeAnalysis"),
    _chart(WidgetId.PNL_BY_PAIR, "PnL by Pair", "pnlByPair"),
    _chart(WidgetId.EMOTION_PERFORMANCE, "Emotion-Based Performance", "emotionPerformance"),
    WidgetSpec(id=WidgetId.MISTAKE_ANALYSIS, section=Section.CHARTS, title="Trade Mistake Analysis",
               settings_schema={"color": ["yellow"]}, render=widgets.chart_renderer("mistakeAnalysis")),
])
