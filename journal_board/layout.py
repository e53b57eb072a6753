"""
LayoutModel: the current arrangement plus per-widget settings overrides.

All three sections are handled by one set of grid operations driven by a
SectionShape descriptor. Metrics and tables are single-row grids stored as a
flat list; charts is a 3x2 grid stored as a list of rows.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from journal_board.catalog import WidgetCatalog
from journal_board.errors import (
    CapacityExceeded,
    DuplicateWidget,
    InvalidSlot,
    NotFound,
    RowFull,
    SectionMismatch,
)
from journal_board.models import EMPTY, EditMode, Layout, Section, Slot

logger = logging.getLogger(__name__)


class SectionShape(BaseModel):
    """Capacity and shape rule of one section."""
    rows: int
    cols: int
    # Single-row sections pad to capacity only while editing; grids always pad.
    pad_when_viewing: bool = False
    # On an occupied target: "append" fills the first free slot, "insert" shifts within the row.
    overflow: str = "append"

    @property
    def capacity(self) -> int:
        return self.rows * self.cols

    @property
    def is_grid(self) -> bool:
        return self.rows > 1


SHAPES: Dict[Section, SectionShape] = {
    Section.METRICS: SectionShape(rows=1, cols=4),
    Section.TABLES: SectionShape(rows=1, cols=2),
    Section.CHARTS: SectionShape(rows=3, cols=2, pad_when_viewing=True, overflow="insert"),
}


class Placement(BaseModel):
    """Where a layout operation landed; ``row`` is only set for grid sections."""
    section: Section
    row: Optional[int] = None
    col: int = 0


class MoveResult(BaseModel):
    source: Placement
    destination: Placement


def _count(row: List[Slot]) -> int:
    return sum(1 for s in row if not s.is_empty)


def _fit_row(row: List[Slot], width: int, pad: bool, label: str) -> List[Slot]:
    """Pad/truncate a row to ``width``, dropping empty slots before real widgets."""
    row = list(row)
    while len(row) > width:
        empties = [i for i, s in enumerate(row) if s.is_empty]
        if empties:
            row.pop(empties[-1])
        else:
            evicted = row.pop()
            logger.warning(f"[{label}] Evicted widget {evicted.widget_id} to keep {width} slots")
    if pad:
        row.extend([EMPTY] * (width - len(row)))
    return row


class LayoutModel:
    """
    Holds the Layout and the settings overrides and enforces the structural
    invariants: capacity per section, a rectangular 3x2 chart grid, and at
    most one occurrence of a widget id per section.
    """

    def __init__(
        self,
        layout: Optional[Layout] = None,
        settings: Optional[Dict[str, Dict[str, Any]]] = None,
        mode: EditMode = EditMode.VIEWING,
        catalog: Optional[WidgetCatalog] = None,
    ):
        self.layout = layout.model_copy(deep=True) if layout is not None else Layout()
        self.settings: Dict[str, Dict[str, Any]] = dict(settings or {})
        self.mode = mode
        self.catalog = catalog
        self.normalize()

    @property
    def editing(self) -> bool:
        return self.mode == EditMode.EDITING

    def replace(self, layout: Layout, settings: Optional[Dict[str, Dict[str, Any]]] = None):
        """Swap in a new layout/settings pair (template switch, cancel)."""
        self.layout = layout.model_copy(deep=True)
        self.settings = {k: dict(v) for k, v in (settings or {}).items()}
        self.normalize()

    def set_mode(self, mode: EditMode):
        self.mode = mode
        self.normalize()

    def snapshot(self) -> Tuple[Layout, Dict[str, Dict[str, Any]]]:
        return self.layout.model_copy(deep=True), {k: dict(v) for k, v in self.settings.items()}

    # ── Section access ───────────────────────────────

    def rows(self, section: Section) -> List[List[Slot]]:
        """Section content as a list of rows (a copy)."""
        section = Section(section)
        if SHAPES[section].is_grid:
            return [list(r) for r in self.layout.charts]
        return [list(getattr(self.layout, section.value))]

    def _store_rows(self, section: Section, rows: List[List[Slot]]):
        if SHAPES[section].is_grid:
            self.layout.charts = rows
        else:
            setattr(self.layout, section.value, rows[0] if rows else [])

    def _normalized_rows(self, section: Section, rows: List[List[Slot]]) -> List[List[Slot]]:
        shape = SHAPES[section]
        pad = self.editing or shape.pad_when_viewing
        rows = [list(r) for r in rows]

        if shape.is_grid:
            while len(rows) > shape.rows:
                dropped = rows.pop()
                for slot in dropped:
                    if not slot.is_empty:
                        logger.warning(f"[{section.value}] Evicted widget {slot.widget_id} with extra row")
            while len(rows) < shape.rows:
                rows.append([])
            rows = [_fit_row(r, shape.cols, True, section.value) for r in rows]
        else:
            rows = [_fit_row(rows[0] if rows else [], shape.cols, pad, section.value)]

        seen = set()
        for r in rows:
            for i, slot in enumerate(r):
                if slot.is_empty:
                    continue
                if slot.widget_id in seen:
                    logger.warning(f"[{section.value}] Dropped duplicate widget {slot.widget_id}")
                    r[i] = EMPTY
                seen.add(slot.widget_id)
        return rows

    # ── Operations ──────────────────────────────────

    def normalize(self) -> Layout:
        """Bring every section back to its shape. Idempotent."""
        for section in Section:
            self._store_rows(section, self._normalized_rows(section, self.rows(section)))
        return self.layout

    def find(self, widget_id: str) -> Optional[Tuple[Section, int, int]]:
        """(section, row, col) of a placed widget, or None."""
        for section in Section:
            for r, row in enumerate(self.rows(section)):
                for c, slot in enumerate(row):
                    if slot.widget_id == widget_id:
                        return section, r, c
        return None

    def _check_widget(self, section: Section, widget_id: str):
        if self.catalog is None:
            return
        spec = self.catalog.require(widget_id)
        if spec.section != section:
            raise SectionMismatch(
                f"Widget {widget_id} belongs to {spec.section.value}, not {section.value}"
            )

    def place_widget(self, section: Section, widget_id: str, flat_index: int) -> Placement:
        """Place ``widget_id`` at ``flat_index`` of ``section``; raises a LayoutError on rejection."""
        section = Section(section)
        shape = SHAPES[section]
        self._check_widget(section, widget_id)
        if flat_index < 0 or flat_index >= shape.capacity:
            raise InvalidSlot(f"Slot {flat_index} is outside the {section.value} section")

        rows = self.rows(section)
        row_index, col = divmod(flat_index, shape.cols)
        while len(rows) <= row_index:
            rows.append([])
        row = rows[row_index]
        if shape.is_grid:
            row.extend([EMPTY] * (shape.cols - len(row)))

        if _count(row) >= shape.cols:
            if shape.is_grid:
                raise RowFull(f"Maximum {shape.cols} widgets per chart row")
            raise CapacityExceeded(f"Maximum {shape.capacity} widgets in {section.value} section")
        if widget_id in self.layout.widget_ids(section):
            raise DuplicateWidget(f"Widget {widget_id} is already in the {section.value} section")

        new = Slot.of(widget_id)
        if col < len(row) and row[col].is_empty:
            row[col] = new
        elif shape.overflow == "insert":
            row.insert(col, new)
            # The row was not full, so an empty slot other than the new one exists.
            free = [i for i, s in enumerate(row) if s.is_empty]
            row.pop(free[-1])
        else:
            free = [i for i, s in enumerate(row) if s.is_empty]
            if free:
                col = free[0]
                row[col] = new
            else:
                col = len(row)
                row.append(new)

        self._store_rows(section, rows)
        self.normalize()
        placed = self.find(widget_id)
        if placed is not None:
            row_index, col = placed[1], placed[2]
        logger.debug(f"Placed {widget_id} in {section.value} at row {row_index}, col {col}")
        return Placement(section=section, row=row_index if shape.is_grid else None, col=col)

    def remove_widget(self, widget_id: str) -> Placement:
        """Replace the widget's slot with an empty one."""
        found = self.find(widget_id)
        if found is None:
            raise NotFound(f"Widget {widget_id} is not on the dashboard")
        section, row_index, col = found
        rows = self.rows(section)
        rows[row_index][col] = EMPTY
        self._store_rows(section, rows)
        logger.debug(f"Removed {widget_id} from {section.value}")
        return Placement(section=section, row=row_index if SHAPES[section].is_grid else None, col=col)

    def move_widget(self, widget_id: str, dest_section: Section, dest_index: int) -> MoveResult:
        """Remove + place as one operation; a rejected placement restores the original layout."""
        before = self.layout.model_copy(deep=True)
        source = self.remove_widget(widget_id)
        try:
            destination = self.place_widget(dest_section, widget_id, dest_index)
        except Exception:
            self.layout = before
            raise
        return MoveResult(source=source, destination=destination)

    def set_override(self, widget_id: str, settings: Dict[str, Any]):
        self.settings[widget_id] = dict(settings)

    def clear_override(self, widget_id: str) -> bool:
        return self.settings.pop(widget_id, None) is not None

    def override_for(self, widget_id: str) -> Dict[str, Any]:
        return dict(self.settings.get(widget_id) or {})

    def available_widgets(self, section: Section, catalog: Optional[WidgetCatalog] = None) -> List[str]:
        """Catalog widgets of ``section`` not yet placed in it."""
        catalog = catalog or self.catalog
        if catalog is None:
            return []
        placed = set(self.layout.widget_ids(Section(section)))
        return [s.id.value for s in catalog.for_section(Section(section)) if s.id.value not in placed]
