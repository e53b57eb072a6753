"""
DashboardContext: everything the controller, session and renderer share.
"""

from typing import Dict, List, Optional, Tuple

from journal_board.layout import LayoutModel
from journal_board.models import (
    Account,
    CalendarSettings,
    DateFilter,
    EditMode,
    Layout,
    Strategy,
    Trade,
)
from journal_board.view import ViewTree


class DashboardContext:
    def __init__(self, layout_model: LayoutModel, view: Optional[ViewTree] = None):
        self.layout_model = layout_model
        self.view = view or ViewTree()

        # Edit state
        self.editing_template_name: Optional[str] = None
        self.snapshot: Optional[Tuple[Layout, Dict[str, dict]]] = None
        self.active_template_name: Optional[str] = None

        # Journal data
        self.strategies: List[Strategy] = []
        self.accounts: List[Account] = []
        self.active_account_id: Optional[str] = None
        self.all_trades: List[Trade] = []  # active account, every date
        self.trades: List[Trade] = []  # active account, date-filtered
        self.indexed_trades: Dict[str, List[Trade]] = {}
        self.date_filter = DateFilter()
        self.calendar_settings = CalendarSettings()

    @property
    def mode(self) -> EditMode:
        return self.layout_model.mode
