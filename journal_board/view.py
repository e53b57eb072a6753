"""
View tree and the Renderer that reconciles it with the LayoutModel.

The tree is made of ViewNode models. Each section has a stable anchor node;
rendering a section replaces only that anchor's children, and rendering a
chart row replaces only that row node, so a partial render produces the same
subtree a full render would.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, Field

from journal_board.catalog import ALL_HISTORY_WIDGETS, WidgetCatalog, WidgetId, WidgetSpec
from journal_board.errors import NotFound, RenderFailure
from journal_board.layout import SHAPES
from journal_board.models import Section, Trade
from journal_board.notifier import NotificationLevel, Notifier

if TYPE_CHECKING:
    from journal_board.context import DashboardContext

logger = logging.getLogger(__name__)


class ViewNode(BaseModel):
    kind: str
    key: Optional[str] = None
    attrs: Dict[str, Any] = Field(default_factory=dict)
    children: List["ViewNode"] = Field(default_factory=list)

    def find(self, key: str) -> Optional["ViewNode"]:
        """Depth-first lookup by key."""
        if self.key == key:
            return self
        for child in self.children:
            found = child.find(key)
            if found is not None:
                return found
        return None


def anchor_key(section: Section) -> str:
    return f"{Section(section).value}-section"


def row_key(row_index: int) -> str:
    return f"charts-row-{row_index}"


class ViewTree:
    """Root of the dashboard view with one anchor node per section."""

    def __init__(self, root: Optional[ViewNode] = None):
        self.root = root if root is not None else self.skeleton()

    @staticmethod
    def skeleton() -> ViewNode:
        return ViewNode(
            kind="dashboard",
            key="dashboard",
            children=[ViewNode(kind="section", key=anchor_key(s), attrs={"section": s.value}) for s in Section],
        )

    def anchor(self, section: Section) -> ViewNode:
        node = self.root.find(anchor_key(section))
        if node is None:
            raise NotFound(f"Missing view anchor for section {Section(section).value}")
        return node

    def missing_anchors(self) -> List[Section]:
        return [s for s in Section if self.root.find(anchor_key(s)) is None]

    def dump(self) -> dict:
        return self.root.model_dump()


def _card_width(spec: WidgetSpec) -> int:
    if spec.section == Section.METRICS:
        return 3
    if spec.section == Section.TABLES:
        return 3 if spec.id == WidgetId.RECENT_TRADES else 9
    return 6


class Renderer:
    """Builds section subtrees from the context and paints widgets through their render capability."""

    def __init__(self, catalog: WidgetCatalog, notifier: Notifier):
        self.catalog = catalog
        self.notifier = notifier

    # ── Input selection ─────────────────────────────

    def _trades_for(self, spec: WidgetSpec, ctx: "DashboardContext") -> List[Trade]:
        if spec.id == WidgetId.TRADING_CALENDAR:
            months = sorted(ctx.indexed_trades)
            return list(ctx.indexed_trades[months[-1]]) if months else []
        if spec.id in ALL_HISTORY_WIDGETS:
            return list(ctx.all_trades)
        return list(ctx.trades)

    def _settings_for(self, spec: WidgetSpec, ctx: "DashboardContext") -> Dict[str, Any]:
        settings = ctx.layout_model.override_for(spec.id.value)
        if spec.id == WidgetId.TRADING_CALENDAR:
            settings = {**ctx.calendar_settings.model_dump(by_alias=True), **settings}
        return settings

    # ── Node builders ───────────────────────────────

    def build_card(self, spec: WidgetSpec, ctx: "DashboardContext") -> ViewNode:
        widget_id = spec.id.value
        content = ViewNode(kind="content", key=f"{widget_id}-content")
        card = ViewNode(
            kind="widget",
            key=widget_id,
            attrs={
                "widget_id": widget_id,
                "section": spec.section.value,
                "title": spec.title,
                "width": _card_width(spec),
                "editing": ctx.layout_model.editing,
            },
            children=[content],
        )
        try:
            spec.render(
                widget_id,
                content,
                self._trades_for(spec, ctx),
                ctx.strategies,
                ctx.active_account_id,
                ctx.accounts,
                self._settings_for(spec, ctx),
            )
        except Exception as e:
            failure = RenderFailure(widget_id, e)
            logger.error(f"[{widget_id}] {failure.message}", exc_info=True)
            card.children = [ViewNode(
                kind="error",
                key=f"{widget_id}-error",
                attrs={"message": f"Error rendering {spec.title}", "reason": failure.reason},
            )]
            self.notifier.notify(f"Failed to render {spec.title}", NotificationLevel.ERROR)
        return card

    @staticmethod
    def build_placeholder(section: Section, flat_index: int) -> ViewNode:
        return ViewNode(
            kind="placeholder",
            key=f"{section.value}-placeholder-{flat_index}",
            attrs={"section": section.value, "index": flat_index, "label": "Add Widget"},
        )

    @staticmethod
    def build_unknown(section: Section, widget_id: str, flat_index: int) -> ViewNode:
        """Error card for a stored widget id the catalog does not know."""
        return ViewNode(
            kind="error",
            key=f"{section.value}-unknown-{flat_index}",
            attrs={
                "section": section.value,
                "index": flat_index,
                "widget_id": widget_id,
                "message": f"Unknown widget {widget_id}",
            },
        )

    def _build_slots(self, section: Section, slots, offset: int, ctx: "DashboardContext") -> List[ViewNode]:
        nodes = []
        for col, slot in enumerate(slots):
            if slot.is_empty:
                if ctx.layout_model.editing:
                    nodes.append(self.build_placeholder(section, offset + col))
                continue
            spec = self.catalog.get(slot.widget_id)
            if spec is None:
                logger.warning(f"Unknown widget {slot.widget_id} in {section.value}")
                if ctx.layout_model.editing:
                    nodes.append(self.build_unknown(section, slot.widget_id, offset + col))
                continue
            nodes.append(self.build_card(spec, ctx))
        return nodes

    def build_chart_row(self, ctx: "DashboardContext", row_index: int) -> ViewNode:
        cols = SHAPES[Section.CHARTS].cols
        rows = ctx.layout_model.rows(Section.CHARTS)
        slots = rows[row_index] if row_index < len(rows) else []
        return ViewNode(
            kind="row",
            key=row_key(row_index),
            attrs={"row": row_index},
            children=self._build_slots(Section.CHARTS, slots, row_index * cols, ctx),
        )

    def build_section(self, ctx: "DashboardContext", section: Section) -> List[ViewNode]:
        section = Section(section)
        if SHAPES[section].is_grid:
            return [self.build_chart_row(ctx, r) for r in range(len(ctx.layout_model.rows(section)))]
        return self._build_slots(section, ctx.layout_model.rows(section)[0], 0, ctx)

    # ── Reconciliation ──────────────────────────────

    def render_section(self, ctx: "DashboardContext", section: Section):
        ctx.view.anchor(section).children = self.build_section(ctx, section)

    def render_row(self, ctx: "DashboardContext", row_index: int):
        anchor = ctx.view.anchor(Section.CHARTS)
        node = self.build_chart_row(ctx, row_index)
        for i, child in enumerate(anchor.children):
            if child.key == node.key:
                anchor.children[i] = node
                return
        # Row not rendered yet, fall back to the whole section.
        self.render_section(ctx, Section.CHARTS)

    def render_all(self, ctx: "DashboardContext"):
        for section in Section:
            self.render_section(ctx, section)
