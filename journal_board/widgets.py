"""
Widget render capabilities.

Each capability has the signature
``render(widget_id, target, trades, strategies, active_account_id, accounts, settings)``
and paints into ``target`` (a ViewNode) by filling ``target.attrs``. They are
stateless transforms over the trades they are handed; the Renderer decides
which trades each widget receives.
"""

import logging
from collections import OrderedDict, defaultdict
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from journal_board.models import Account, Trade
from journal_board.trades import days_in_month, index_trades_by_month, month_key

logger = logging.getLogger(__name__)

WIN_COLOR = "#28a745"
LOSS_COLOR = "#dc3545"
NEUTRAL_COLOR = "#007bff"

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# ── Shared helpers ───────────────────────────────────

def _sorted(trades: Iterable[Trade]) -> List[Trade]:
    return sorted(trades, key=lambda t: t.sort_key)


def _find_account(accounts: Sequence[Account], account_id: str) -> Optional[Account]:
    for account in accounts:
        if account.id == account_id:
            return account
    return None


def _initial_balance(accounts: Sequence[Account], account_id: str) -> float:
    account = _find_account(accounts, account_id)
    return account.initial_balance if account else 10000.0


def win_rate(trades: Sequence[Trade]) -> float:
    if not trades:
        return 0.0
    wins = sum(1 for t in trades if t.outcome == "Win")
    return wins / len(trades) * 100


def format_currency(value: float, fmt: Optional[str]) -> str:
    sign = "-" if value < 0 else ""
    if fmt == "currency-short":
        return f"{sign}${abs(value):,.0f}"
    return f"{sign}${abs(value):,.2f}"


def format_percentage(value: float, fmt: Optional[str]) -> str:
    if fmt == "percentage-short":
        return f"{value:.0f}%"
    return f"{value:.2f}%"


def daily_net(trades: Iterable[Trade]) -> "OrderedDict[str, float]":
    """Net P&L per trading day, in date order."""
    totals: Dict[str, float] = defaultdict(float)
    for t in trades:
        totals[t.date] += t.profit_loss
    return OrderedDict(sorted(totals.items()))


def current_streak(trades: Sequence[Trade]) -> Tuple[str, int]:
    """(outcome, length) of the run of identical outcomes ending at the latest trade."""
    decided = [t for t in _sorted(trades) if t.outcome in ("Win", "Loss")]
    if not decided:
        return "none", 0
    last = decided[-1].outcome
    length = 0
    for t in reversed(decided):
        if t.outcome != last:
            break
        length += 1
    return last.lower(), length


def day_streak(trades: Sequence[Trade]) -> Tuple[str, int]:
    """Same as current_streak but over net daily results."""
    days = [pnl for pnl in daily_net(trades).values() if pnl != 0]
    if not days:
        return "none", 0
    positive = days[-1] > 0
    length = 0
    for pnl in reversed(days):
        if (pnl > 0) != positive:
            break
        length += 1
    return ("win" if positive else "loss"), length


# ── Metrics ─────────────────────────────────────────

def render_account_balance(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    account = _find_account(accounts, active_account_id)
    if account is None:
        raise ValueError(f"Account {active_account_id} not found")
    total_pnl = sum(t.profit_loss for t in trades if t.account_id == account.id)
    balance = account.initial_balance + total_pnl
    color = settings.get("textColor") or (WIN_COLOR if balance >= account.initial_balance else LOSS_COLOR)
    target.attrs.update(
        value=round(balance, 2),
        display=format_currency(balance, settings.get("format")),
        pnl=round(total_pnl, 2),
        pnl_display=("+" if total_pnl >= 0 else "") + format_currency(total_pnl, "currency"),
        color=color,
    )


def _render_win_rate(target, trades, settings):
    rate = win_rate(trades)
    target.attrs.update(
        value=round(rate, 2),
        display=format_percentage(rate, settings.get("format") or "percentage"),
        color=settings.get("textColor") or (WIN_COLOR if rate >= 50 else LOSS_COLOR),
    )


def render_trade_win(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    _render_win_rate(target, trades, settings)


def render_daily_win(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    today = date.today().isoformat()
    _render_win_rate(target, [t for t in trades if t.date == today], settings)


def render_current_streak(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    trade_kind, trade_len = current_streak(trades)
    day_kind, day_len = day_streak(trades)
    target.attrs.update(
        trade_streak={"type": trade_kind, "length": trade_len},
        day_streak={"type": day_kind, "length": day_len},
        colors={
            "win": settings.get("circleColorWin") or WIN_COLOR,
            "loss": settings.get("circleColorLoss") or LOSS_COLOR,
        },
    )


def render_summary(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    wins = sum(1 for t in trades if t.outcome == "Win")
    losses = sum(1 for t in trades if t.outcome == "Loss")
    total = len(trades)
    short = settings.get("format") == "number-short"
    net = sum(t.profit_loss for t in trades)
    target.attrs.update(
        total=total,
        wins=wins,
        losses=losses,
        breakeven=total - wins - losses,
        net=round(net, 0 if short else 2),
        colors={
            "win": settings.get("circleColorWin") or WIN_COLOR,
            "loss": settings.get("circleColorLoss") or LOSS_COLOR,
            "neutral": settings.get("circleColorNeutral") or NEUTRAL_COLOR,
        },
    )


# ── Tables ──────────────────────────────────────────

def render_recent_trades(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    limit = int(settings.get("limit", 10))
    names = {s.id: s.name for s in strategies}
    rows = []
    for t in reversed(_sorted(trades)[-limit:] if limit > 0 else []):
        rows.append({
            "date": t.date,
            "pair": t.pair,
            "strategy": names.get(t.strategy_id, ""),
            "outcome": t.outcome,
            "profit_loss": t.profit_loss,
        })
    target.attrs.update(columns=["date", "pair", "strategy", "outcome", "profit_loss"], rows=rows)


def render_trading_calendar(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    """Daily P&L grid for the month of the latest trade handed in (or the current month)."""
    ordered = _sorted(t for t in trades if t.day is not None)
    anchor = ordered[-1].day if ordered else date.today()
    month_trades = index_trades_by_month(ordered).get(month_key(anchor), [])

    days: Dict[int, Dict[str, Any]] = {}
    for t in month_trades:
        cell = days.setdefault(t.day.day, {"pnl": 0.0, "trades": 0, "wins": 0})
        cell["pnl"] += t.profit_loss
        cell["trades"] += 1
        cell["wins"] += 1 if t.outcome == "Win" else 0
    if not settings.get("showTradeDetails", True):
        days = {d: {"pnl": c["pnl"]} for d, c in days.items()}

    attrs: Dict[str, Any] = {
        "month": month_key(anchor),
        "days_in_month": days_in_month(anchor.year, anchor.month),
        "days": days,
    }
    if settings.get("showWeeklyStats", True):
        weeks: Dict[int, float] = defaultdict(float)
        first_weekday = date(anchor.year, anchor.month, 1).weekday()
        for day_num, cell in days.items():
            weeks[(day_num + first_weekday - 1) // 7 + 1] += cell["pnl"]
        attrs["weeks"] = dict(weeks)
    target.attrs.update(attrs)


def render_yearly_overview(widget_id, target, trades, strategies, active_account_id, accounts, settings):
    dated = [t for t in trades if t.day is not None]
    year = max((t.day.year for t in dated), default=date.today().year)
    months = [0.0] * 12
    for t in dated:
        if t.day.year == year:
            months[t.day.month - 1] += t.profit_loss
    target.attrs.update(year=year, months=[round(m, 2) for m in months], total=round(sum(months), 2))


# ── Charts ──────────────────────────────────────────

Series = Tuple[List[Any], List[float]]


def _balance(trades, strategies, initial) -> Series:
    labels, values, balance = [], [], initial
    for t in _sorted(trades):
        balance += t.profit_loss
        labels.append(t.date)
        values.append(round(balance, 2))
    return labels, values


def _drawdown(trades, strategies, initial) -> Series:
    if initial <= 0:
        return [], []
    labels, values = [], []
    balance = peak = initial
    for t in _sorted(trades):
        balance += t.profit_loss
        peak = max(peak, balance)
        drawdown = (balance - peak) / initial * 100
        labels.append(t.date)
        values.append(round(max(-50.0, min(0.0, drawdown)), 2))
    return labels, values


def _daily_net_pnl(trades, strategies, initial) -> Series:
    daily = daily_net(trades)
    return list(daily.keys()), [round(v, 2) for v in daily.values()]


def _net_cumulative(trades, strategies, initial) -> Series:
    labels, values, running = [], [], 0.0
    for t in _sorted(trades):
        running += t.profit_loss
        labels.append(t.date)
        values.append(round(running, 2))
    return labels, values


def _cumulative_daily_net(trades, strategies, initial) -> Series:
    labels, values, running = [], [], 0.0
    for day, pnl in daily_net(trades).items():
        running += pnl
        labels.append(day)
        values.append(round(running, 2))
    return labels, values


def _trade_count(trades, strategies, initial) -> Series:
    counts: Dict[str, int] = defaultdict(int)
    for t in trades:
        counts[t.date] += 1
    ordered = sorted(counts.items())
    return [k for k, _ in ordered], [float(v) for _, v in ordered]


def _average_rrr(trades, strategies, initial) -> Series:
    groups: Dict[str, List[float]] = defaultdict(list)
    for t in trades:
        if t.actual_rr is not None:
            groups[t.date].append(t.actual_rr)
    ordered = sorted(groups.items())
    return [k for k, _ in ordered], [round(sum(v) / len(v), 2) for _, v in ordered]


def _win_rate_over_time(trades, strategies, initial) -> Series:
    labels, values, wins, total = [], [], 0, 0
    by_day: Dict[str, List[Trade]] = defaultdict(list)
    for t in trades:
        by_day[t.date].append(t)
    for day in sorted(by_day):
        total += len(by_day[day])
        wins += sum(1 for t in by_day[day] if t.outcome == "Win")
        labels.append(day)
        values.append(round(wins / total * 100, 2))
    return labels, values


def _group_sum(trades, key: Callable[[Trade], Optional[str]]) -> Series:
    totals: Dict[str, float] = defaultdict(float)
    for t in trades:
        totals[key(t) or "Unknown"] += t.profit_loss
    ordered = sorted(totals.items())
    return [k for k, _ in ordered], [round(v, 2) for _, v in ordered]


def _strategy_pnl(trades, strategies, initial) -> Series:
    names = {s.id: s.name for s in strategies}
    return _group_sum(trades, lambda t: names.get(t.strategy_id))


def _session_pnl(trades, strategies, initial) -> Series:
    return _group_sum(trades, lambda t: t.session)


def _pnl_by_pair(trades, strategies, initial) -> Series:
    return _group_sum(trades, lambda t: t.pair)


def _timeframe_distribution(trades, strategies, initial) -> Series:
    counts: Dict[str, int] = defaultdict(int)
    for t in trades:
        counts[t.timeframe or "Unknown"] += 1
    ordered = sorted(counts.items())
    return [k for k, _ in ordered], [float(v) for _, v in ordered]


def _pnl_by_weekday(trades, strategies, initial) -> Series:
    totals = [0.0] * 7
    for t in trades:
        if t.day is not None:
            totals[t.day.weekday()] += t.profit_loss
    return list(WEEKDAYS), [round(v, 2) for v in totals]


HOLD_TIME_BUCKETS = [("< 30m", 30), ("30m-1h", 60), ("1h-4h", 240), ("> 4h", None)]


def _hold_time_analysis(trades, strategies, initial) -> Series:
    totals = OrderedDict((label, 0.0) for label, _ in HOLD_TIME_BUCKETS)
    for t in trades:
        if t.hold_time is None:
            continue
        for label, upper in HOLD_TIME_BUCKETS:
            if upper is None or t.hold_time < upper:
                totals[label] += t.profit_loss
                break
    return list(totals.keys()), [round(v, 2) for v in totals.values()]


def _emotion_performance(trades, strategies, initial) -> Series:
    groups: Dict[str, List[float]] = defaultdict(list)
    for t in trades:
        for emotion in t.emotions:
            groups[emotion].append(t.profit_loss)
    ordered = sorted(groups.items())
    return [k for k, _ in ordered], [round(sum(v) / len(v), 2) for _, v in ordered]


def _mistake_analysis(trades, strategies, initial) -> Series:
    counts: Dict[str, int] = defaultdict(int)
    for t in trades:
        for mistake in t.mistakes:
            counts[mistake] += 1
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [k for k, _ in ordered], [float(v) for _, v in ordered]


CHART_SERIES: Dict[str, Tuple[str, Callable[..., Series]]] = {
    "balance": ("line", _balance),
    "drawdown": ("line", _drawdown),
    "dailyNetPnL": ("bar", _daily_net_pnl),
    "netCumulative": ("line", _net_cumulative),
    "cumulativeDailyNet": ("line", _cumulative_daily_net),
    "tradeCount": ("bar", _trade_count),
    "averageRRR": ("bar", _average_rrr),
    "winRateOverTime": ("line", _win_rate_over_time),
    "strategyPnL": ("bar", _strategy_pnl),
    "sessionPnL": ("bar", _session_pnl),
    "timeframeDistribution": ("bar", _timeframe_distribution),
    "pnlByWeekday": ("bar", _pnl_by_weekday),
    "holdTimeAnalysis": ("bar", _hold_time_analysis),
    "pnlByPair": ("bar", _pnl_by_pair),
    "emotionPerformance": ("bar", _emotion_performance),
    "mistakeAnalysis": ("bar", _mistake_analysis),
}

LINE_DEFAULTS = {"lineColor": "#4466ff", "dotColor": "#4466ff",
                 "fillStartColor": "rgba(68, 102, 255, 0.3)",
                 "fillEndColor": "rgba(68, 102, 255, 0.05)"}
BAR_DEFAULTS = {"dotColor": "#4466ff"}


def chart_renderer(chart_key: str):
    """Build the render capability for one chart type."""
    chart_type, series = CHART_SERIES[chart_key]

    def render(widget_id, target, trades, strategies, active_account_id, accounts, settings):
        labels, values = series(trades, strategies, _initial_balance(accounts, active_account_id))
        colors = dict(LINE_DEFAULTS if chart_type == "line" else BAR_DEFAULTS)
        colors["annotationColor"] = "#adb5bd"
        colors.update({k: v for k, v in settings.items() if k.endswith("Color") and v})
        target.attrs["chart"] = {
            "key": chart_key,
            "type": chart_type,
            "labels": labels,
            "values": values,
            "colors": colors,
            "x_grid": bool(settings.get("xGrid", False)),
            "y_grid": bool(settings.get("yGrid", False)),
        }

    render.__name__ = f"render_{chart_key}"
    return render
