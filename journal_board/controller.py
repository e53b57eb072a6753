"""
Dashboard controller: owns the DashboardContext, sequences startup and
re-renders only the sections (or chart rows) an intent touched.
"""

import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from journal_board.catalog import CATALOG, WidgetCatalog
from journal_board.context import DashboardContext
from journal_board.errors import ConfigurationError, PersistenceFailure
from journal_board.layout import SHAPES, LayoutModel
from journal_board.models import Account, DateFilter, Section, Strategy
from journal_board.notifier import NotificationLevel, Notifier
from journal_board.template_store import ResolutionSource, TemplateStore
from journal_board.trades import (
    TradeFeed,
    apply_date_filter,
    coerce_trades,
    filter_by_account,
    index_trades_by_month,
)
from journal_board.view import Renderer, ViewTree

logger = logging.getLogger(__name__)


class DashboardController:
    def __init__(
        self,
        store: TemplateStore,
        feed: TradeFeed,
        notifier: Notifier,
        catalog: WidgetCatalog = CATALOG,
        view: Optional[ViewTree] = None,
        trade_ready_timeout: float = 2.0,
    ):
        self.store = store
        self.feed = feed
        self.notifier = notifier
        self.catalog = catalog
        self.trade_ready_timeout = trade_ready_timeout
        self.context = DashboardContext(LayoutModel(catalog=catalog), view)
        self.renderer = Renderer(catalog, notifier)
        self.initialized = False

    # ── Startup ─────────────────────────────────────

    def _validate(self, strategies: Any, accounts: Any, active_account_id: Any):
        missing = self.context.view.missing_anchors()
        if missing:
            names = ", ".join(s.value for s in missing)
            raise ConfigurationError(f"Dashboard containers not found: {names}")
        if not isinstance(accounts, list) or not accounts:
            raise ConfigurationError("Invalid accounts data: at least one account is required")
        if strategies is not None and not isinstance(strategies, list):
            raise ConfigurationError("Invalid strategies data: expected a list")
        try:
            self.context.accounts = [Account.model_validate(a) for a in accounts]
            self.context.strategies = [Strategy.model_validate(s) for s in strategies or []]
        except ValidationError as e:
            raise ConfigurationError(f"Invalid journal data: {e.error_count()} error(s)") from e
        if active_account_id is None or str(active_account_id) not in {a.id for a in self.context.accounts}:
            raise ConfigurationError(f"Invalid active account: {active_account_id}")
        self.context.active_account_id = str(active_account_id)

    async def initialize(
        self,
        strategies: Any,
        accounts: Any,
        active_account_id: Any,
        date_filter: Optional[DateFilter] = None,
    ) -> bool:
        """Validate inputs, resolve the layout, wait for trades and render every section once."""
        self.initialized = False
        try:
            self._validate(strategies, accounts, active_account_id)
            resolution = await self.store.resolve()
            raw_trades = await self.feed.wait(self.trade_ready_timeout)
        except ConfigurationError as e:
            logger.error(f"Dashboard initialization failed: {e}")
            self.notifier.notify(e.message, NotificationLevel.ERROR)
            return False

        ctx = self.context
        ctx.layout_model.replace(resolution.layout, resolution.settings)
        ctx.active_template_name = resolution.active_template
        if date_filter is not None:
            ctx.date_filter = date_filter
        try:
            ctx.calendar_settings = await self.store.load_calendar_settings()
        except (PersistenceFailure, ValidationError) as e:
            logger.warning(f"Calendar settings unavailable, using defaults: {e}")

        if resolution.source == ResolutionSource.CREATED_DEFAULT:
            self.notifier.notify("Created Default template.", NotificationLevel.SUCCESS)
        elif resolution.source == ResolutionSource.FALLBACK:
            self.notifier.notify("Error loading dashboard configuration.", NotificationLevel.ERROR)

        self.load_trades(raw_trades)
        self.render_dashboard()
        self.initialized = True
        logger.info(
            f"Dashboard initialized: template={ctx.active_template_name}, "
            f"source={resolution.source.value}, trades={len(ctx.all_trades)}"
        )
        return True

    # ── Data ────────────────────────────────────────

    def load_trades(self, raw_trades: List[Any]):
        ctx = self.context
        ctx.all_trades = filter_by_account(coerce_trades(raw_trades), ctx.active_account_id)
        ctx.indexed_trades = index_trades_by_month(ctx.all_trades)
        ctx.trades = apply_date_filter(ctx.all_trades, ctx.date_filter)

    def set_date_filter(self, date_filter: DateFilter):
        ctx = self.context
        ctx.date_filter = date_filter
        ctx.trades = apply_date_filter(ctx.all_trades, date_filter)
        logger.debug(f"Date filter set to {date_filter.type.value}: {len(ctx.trades)} trades")
        self.render_dashboard()

    # ── Rendering ───────────────────────────────────

    def render_dashboard(self):
        self.renderer.render_all(self.context)

    def render_section(self, section: Section, row: Optional[int] = None):
        """Re-render one section, or a single chart row when ``row`` is given."""
        section = Section(section)
        if row is not None and SHAPES[section].is_grid:
            self.renderer.render_row(self.context, row)
        else:
            self.renderer.render_section(self.context, section)

    def view_tree(self) -> dict:
        return self.context.view.dump()
