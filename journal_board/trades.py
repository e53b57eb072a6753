"""
Trade dataset helpers: readiness signal, account/date filtering, month index.
"""

import asyncio
import calendar
import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from journal_board.errors import ConfigurationError
from journal_board.models import DateFilter, DateFilterType, Trade

logger = logging.getLogger(__name__)


class TradeFeed:
    """
    One-shot "trade data is available" signal.

    The producer calls ``publish``; the controller awaits ``wait`` once, with a
    bounded timeout.
    """

    def __init__(self):
        self._ready = asyncio.Event()
        self._trades: Optional[List[Any]] = None

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def publish(self, trades: Any):
        if not isinstance(trades, list):
            raise ConfigurationError("Invalid trades data: expected a list of trades")
        self._trades = list(trades)
        self._ready.set()
        logger.debug(f"Trade feed published {len(self._trades)} trades")

    async def wait(self, timeout: float) -> List[Any]:
        if not self._ready.is_set():
            try:
                await asyncio.wait_for(self._ready.wait(), timeout)
            except asyncio.TimeoutError:
                raise ConfigurationError(
                    f"Trade data was not available within {timeout:.1f}s"
                ) from None
        return list(self._trades or [])


def coerce_trades(raw: Iterable[Any]) -> List[Trade]:
    """Validate raw records into Trade models, skipping invalid ones."""
    trades = []
    for i, item in enumerate(raw):
        if isinstance(item, Trade):
            trades.append(item)
            continue
        try:
            trades.append(Trade.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping invalid trade at index {i}: {e.error_count()} error(s)")
    return trades


def filter_by_account(trades: Iterable[Trade], account_id: str) -> List[Trade]:
    return [t for t in trades if t.account_id == account_id]


def _months_back(today: date, months: int) -> date:
    month_index = today.year * 12 + today.month - 1 - months
    return date(month_index // 12, month_index % 12 + 1, 1)


def date_range_for_filter(
    date_filter: DateFilter, today: Optional[date] = None
) -> Tuple[Optional[date], Optional[date]]:
    """Resolve a filter to an inclusive (start, end) range; (None, None) means all trades."""
    today = today or date.today()
    kind = date_filter.type
    if kind == DateFilterType.CUSTOM:
        return date_filter.start_date, date_filter.end_date
    if kind == DateFilterType.ALL_TIME:
        return None, None
    if kind == DateFilterType.CURRENT_MONTH:
        return today.replace(day=1), today
    if kind == DateFilterType.LAST_3_DAYS:
        return today - timedelta(days=2), today
    if kind == DateFilterType.LAST_7_DAYS:
        return today - timedelta(days=6), today
    if kind == DateFilterType.LAST_15_DAYS:
        return today - timedelta(days=14), today
    if kind == DateFilterType.LAST_3_MONTHS:
        return _months_back(today, 3), today
    if kind == DateFilterType.LAST_6_MONTHS:
        return _months_back(today, 6), today
    if kind == DateFilterType.YEAR_TO_DATE:
        return date(today.year, 1, 1), today
    logger.warning(f"Unrecognized filter type: {kind}, returning all trades")
    return None, None


def filter_by_date_range(
    trades: Iterable[Trade], start: Optional[date], end: Optional[date]
) -> List[Trade]:
    trades = list(trades)
    if start is None or end is None:
        return trades
    return [t for t in trades if t.day is not None and start <= t.day <= end]


def apply_date_filter(
    trades: Iterable[Trade], date_filter: DateFilter, today: Optional[date] = None
) -> List[Trade]:
    start, end = date_range_for_filter(date_filter, today)
    return filter_by_date_range(trades, start, end)


def index_trades_by_month(trades: Iterable[Trade]) -> Dict[str, List[Trade]]:
    """Group trades under 'YYYY-MM' keys; trades with malformed dates are skipped."""
    indexed: Dict[str, List[Trade]] = {}
    for trade in trades:
        if trade.day is None:
            logger.warning(f"Invalid trade date format: {trade.date!r}")
            continue
        indexed.setdefault(trade.date[:7], []).append(trade)
    logger.debug(f"Indexed {len(indexed)} months")
    return indexed


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]
