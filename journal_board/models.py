"""
Data models for layouts, templates and the trade records widgets consume.
"""

import re
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Persisted form of an empty slot.
PLACEHOLDER = "placeholder"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Section(str, Enum):
    METRICS = "metrics"
    TABLES = "tables"
    CHARTS = "charts"


class EditMode(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


# ── Layout ──────────────────────────────────────────

class Slot(BaseModel):
    """A position in a section: empty, or occupied by one widget."""
    model_config = ConfigDict(frozen=True)

    widget_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.widget_id is None

    @classmethod
    def of(cls, widget_id: str) -> "Slot":
        return cls(widget_id=widget_id)

    @classmethod
    def parse(cls, value: Any) -> "Slot":
        """Accept a Slot, a widget id, or the persisted placeholder string."""
        if isinstance(value, Slot):
            return value
        if value is None or value == PLACEHOLDER or value == "":
            return EMPTY
        if isinstance(value, dict):
            return cls.model_validate(value)
        return cls(widget_id=str(value))

    def dump(self) -> str:
        return PLACEHOLDER if self.widget_id is None else self.widget_id


EMPTY = Slot()


class Layout(BaseModel):
    """Assignment of widgets to slots across the three sections."""
    metrics: List[Slot] = Field(default_factory=list)
    tables: List[Slot] = Field(default_factory=list)
    charts: List[List[Slot]] = Field(default_factory=list)

    @field_validator("metrics", "tables", mode="before")
    @classmethod
    def _parse_flat(cls, value: Any) -> List[Slot]:
        return [Slot.parse(v) for v in (value or [])]

    @field_validator("charts", mode="before")
    @classmethod
    def _parse_grid(cls, value: Any) -> List[List[Slot]]:
        return [[Slot.parse(v) for v in (row or [])] for row in (value or [])]

    @field_serializer("metrics", "tables")
    def _dump_flat(self, slots: List[Slot]) -> List[str]:
        return [s.dump() for s in slots]

    @field_serializer("charts")
    def _dump_grid(self, rows: List[List[Slot]]) -> List[List[str]]:
        return [[s.dump() for s in row] for row in rows]

    @classmethod
    def empty(cls) -> "Layout":
        """All-placeholder layout used when creating a new template."""
        return cls(
            metrics=[EMPTY] * 4,
            tables=[EMPTY] * 2,
            charts=[[EMPTY, EMPTY] for _ in range(3)],
        )

    def widget_ids(self, section: Section) -> List[str]:
        """Non-empty widget ids of a section, in slot order."""
        if section == Section.CHARTS:
            slots = [s for row in self.charts for s in row]
        else:
            slots = getattr(self, section.value)
        return [s.widget_id for s in slots if not s.is_empty]


DEFAULT_LAYOUT = Layout(
    metrics=["account-balance", "trade-win", "daily-win", "current-streak"],
    tables=["recent-trades", "trading-calendar"],
    charts=[
        ["drawdown", "balance"],
        ["daily-net-pnl", "net-cumulative"],
        ["cumulative-daily-net", "trade-count"],
    ],
)


class Template(BaseModel):
    """A named, persisted (layout, settings overrides) pair."""
    name: str
    layout: Layout = Field(default_factory=Layout)
    settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("settings", mode="before")
    @classmethod
    def _none_settings(cls, value: Any) -> Any:
        return value or {}


class ActiveTemplateRef(BaseModel):
    name: str


class CalendarSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_weekly_stats: bool = Field(default=True, alias="showWeeklyStats")
    show_trade_details: bool = Field(default=True, alias="showTradeDetails")


# ── Journal data ────────────────────────────────────

class Account(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str = ""
    initial_balance: float = Field(default=10000.0, alias="initialBalance")

    @field_validator("id", mode="before")
    @classmethod
    def _str_id(cls, value: Any) -> str:
        return str(value)


class Strategy(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _str_id(cls, value: Any) -> str:
        return str(value)


class Trade(BaseModel):
    """A journal trade record. Accepts the journal's camelCase keys."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[Any] = None
    date: str
    trade_time: Optional[str] = Field(default=None, alias="tradeTime")
    account_id: str = Field(alias="accountId")
    profit_loss: float = Field(default=0.0, alias="profitLoss")
    outcome: Optional[str] = None
    pair: Optional[str] = None
    strategy_id: Optional[str] = Field(default=None, alias="strategyId")
    session: Optional[str] = None
    timeframe: Optional[str] = None
    hold_time: Optional[float] = Field(default=None, alias="holdTime")
    planned_rr: Optional[float] = Field(default=None, alias="plannedRR")
    actual_rr: Optional[float] = Field(default=None, alias="actualRR")
    emotions: List[str] = Field(default_factory=list)
    mistakes: List[str] = Field(default_factory=list)

    @field_validator("account_id", "strategy_id", mode="before")
    @classmethod
    def _str_ids(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("profit_loss", mode="before")
    @classmethod
    def _number(cls, value: Any) -> Any:
        return value if value not in (None, "") else 0.0

    @property
    def day(self) -> Optional[date]:
        if not _ISO_DATE.match(self.date):
            return None
        try:
            return date.fromisoformat(self.date)
        except ValueError:
            return None

    @property
    def sort_key(self) -> str:
        return f"{self.date}T{self.trade_time or '00:00'}"


class DateFilterType(str, Enum):
    CURRENT_MONTH = "current-month"
    LAST_3_DAYS = "last-3-days"
    LAST_7_DAYS = "last-7-days"
    LAST_15_DAYS = "last-15-days"
    LAST_3_MONTHS = "last-3-months"
    LAST_6_MONTHS = "last-6-months"
    YEAR_TO_DATE = "year-to-date"
    ALL_TIME = "all-time"
    CUSTOM = "custom"


class DateFilter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: DateFilterType = DateFilterType.CURRENT_MONTH
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
