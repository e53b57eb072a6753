"""
EditSession: the Viewing/Editing state machine.

Widget intents (add, delete, move) are only accepted while editing and are
applied to the LayoutModel immediately; nothing reaches the store until
``save``. Template intents (select, edit, create) are only accepted while
viewing. Every intent returns an IntentResult; rejected intents are reported
through the Notifier and leave the model untouched.
"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from journal_board.errors import (
    DashboardError,
    EditInProgress,
    NotEditing,
    NotFound,
    PersistenceFailure,
)
from journal_board.models import EditMode, Layout, Section
from journal_board.notifier import NotificationLevel

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]


class IntentResult(BaseModel):
    ok: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    section: Optional[Section] = None
    row: Optional[int] = None
    template: Optional[str] = None


class EditSession:
    def __init__(self, controller, confirm: Optional[ConfirmFn] = None):
        self.controller = controller
        self.store = controller.store
        self.notifier = controller.notifier
        self.context = controller.context
        self.confirm = confirm

    @property
    def model(self):
        return self.context.layout_model

    @property
    def mode(self) -> EditMode:
        return self.model.mode

    # ── Helpers ─────────────────────────────────────

    def _require_editing(self):
        if self.mode != EditMode.EDITING:
            raise NotEditing("Enter edit mode to change the layout")

    def _require_viewing(self):
        if self.mode != EditMode.VIEWING:
            raise EditInProgress("Save or cancel the current edit first")

    def _fail(self, error: DashboardError) -> IntentResult:
        level = NotificationLevel.ERROR if isinstance(error, PersistenceFailure) else NotificationLevel.WARNING
        logger.warning(f"Intent rejected ({error.reason}): {error.message}")
        self.notifier.notify(error.message, level)
        return IntentResult(ok=False, reason=error.reason, message=error.message)

    def _title(self, widget_id: str) -> str:
        spec = self.controller.catalog.get(widget_id)
        return spec.title if spec else widget_id

    def _enter_editing(self, template_name: str):
        self.context.editing_template_name = template_name
        self.context.snapshot = self.model.snapshot()
        self.model.set_mode(EditMode.EDITING)
        self.controller.render_dashboard()

    def _leave_editing(self):
        self.context.editing_template_name = None
        self.context.snapshot = None
        self.model.set_mode(EditMode.VIEWING)
        self.controller.render_dashboard()

    def _load(self, template):
        self.model.replace(template.layout, template.settings)
        self.context.active_template_name = template.name

    # ── Template intents ────────────────────────────

    async def edit_template(self, name: str) -> IntentResult:
        """Viewing -> Editing on an existing template, which becomes active."""
        try:
            self._require_viewing()
            template = await self.store.set_active(name)
        except DashboardError as e:
            return self._fail(e)
        self._load(template)
        self._enter_editing(name)
        return IntentResult(ok=True, template=name)

    async def create_template(self, name: str) -> IntentResult:
        """Persist a new all-placeholder template, activate it and start editing it."""
        try:
            self._require_viewing()
            template = await self.store.create_template(name, Layout.empty(), {})
            await self.store.set_active(template.name)
        except DashboardError as e:
            return self._fail(e)
        self._load(template)
        self._enter_editing(template.name)
        self.notifier.notify(f"Template '{template.name}' created.", NotificationLevel.SUCCESS)
        return IntentResult(ok=True, template=template.name)

    async def select_template(self, name: str) -> IntentResult:
        try:
            self._require_viewing()
            template = await self.store.set_active(name)
        except DashboardError as e:
            return self._fail(e)
        self._load(template)
        self.controller.render_dashboard()
        return IntentResult(ok=True, template=name)

    async def delete_template(self, name: str) -> IntentResult:
        try:
            await self.store.delete_template(name)
        except DashboardError as e:
            return self._fail(e)
        self.notifier.notify(f"Template '{name}' deleted.", NotificationLevel.SUCCESS)
        return IntentResult(ok=True, template=name)

    async def rename_template(self, old: str, new: str) -> IntentResult:
        try:
            template = await self.store.rename_template(old, new)
        except DashboardError as e:
            return self._fail(e)
        if self.context.active_template_name == old:
            self.context.active_template_name = template.name
        if self.context.editing_template_name == old:
            self.context.editing_template_name = template.name
        return IntentResult(ok=True, template=template.name)

    # ── Edit lifecycle ──────────────────────────────

    async def save(self) -> IntentResult:
        """Editing -> Viewing. A failed write keeps the session in Editing."""
        try:
            self._require_editing()
            await self.store.save(self.model.layout, self.model.settings)
        except DashboardError as e:
            return self._fail(e)
        name = self.context.editing_template_name
        self._leave_editing()
        self.notifier.notify("Dashboard saved.", NotificationLevel.SUCCESS)
        return IntentResult(ok=True, template=name)

    async def cancel(self) -> IntentResult:
        """Editing -> Viewing, restoring the layout from when editing started."""
        try:
            self._require_editing()
        except DashboardError as e:
            return self._fail(e)
        if self.context.snapshot is not None:
            layout, settings = self.context.snapshot
            self.model.replace(layout, settings)
        self._leave_editing()
        return IntentResult(ok=True)

    # ── Widget intents ──────────────────────────────

    async def add_widget(self, section: Section, widget_id: str, index: int) -> IntentResult:
        try:
            self._require_editing()
            placement = self.model.place_widget(section, widget_id, index)
        except DashboardError as e:
            return self._fail(e)
        self.controller.render_section(placement.section, placement.row)
        return IntentResult(ok=True, section=placement.section, row=placement.row)

    async def delete_widget(self, widget_id: str, confirm: Optional[ConfirmFn] = None) -> IntentResult:
        try:
            self._require_editing()
            if self.model.find(widget_id) is None:
                raise NotFound(f"Widget {widget_id} is not on the dashboard")
        except DashboardError as e:
            return self._fail(e)

        gate = confirm or self.confirm
        if gate is None or not gate(widget_id):
            logger.debug(f"[{widget_id}] Delete not confirmed")
            return IntentResult(ok=False, reason="cancelled", message="Delete not confirmed")

        placement = self.model.remove_widget(widget_id)
        self.controller.render_section(placement.section, placement.row)
        self.notifier.notify(f"{self._title(widget_id)} removed.", NotificationLevel.INFO)
        return IntentResult(ok=True, section=placement.section, row=placement.row)

    async def move_widget(self, widget_id: str, dest_section: Section, dest_index: int) -> IntentResult:
        try:
            self._require_editing()
            moved = self.model.move_widget(widget_id, dest_section, dest_index)
        except DashboardError as e:
            return self._fail(e)
        source, destination = moved.source, moved.destination
        if source.section != destination.section or source.row != destination.row:
            self.controller.render_section(source.section, source.row)
        self.controller.render_section(destination.section, destination.row)
        return IntentResult(ok=True, section=destination.section, row=destination.row)

    # ── Widget settings ─────────────────────────────

    async def _persist_settings(self, widget_id: str, previous: Optional[Dict[str, Any]]) -> Optional[IntentResult]:
        # While editing, only the settings change is persisted; the layout waits for save().
        if self.context.snapshot is not None:
            layout = self.context.snapshot[0]
        else:
            layout = self.model.layout
        try:
            await self.store.save(layout, self.model.settings)
        except PersistenceFailure as e:
            if previous is None:
                self.model.clear_override(widget_id)
            else:
                self.model.set_override(widget_id, previous)
            return self._fail(e)
        if self.context.snapshot is not None:
            self.context.snapshot = (self.context.snapshot[0], {k: dict(v) for k, v in self.model.settings.items()})
        return None

    def _rerender_widget(self, widget_id: str) -> IntentResult:
        section, row, _ = self.model.find(widget_id)
        row = row if section == Section.CHARTS else None
        self.controller.render_section(section, row)
        return IntentResult(ok=True, section=section, row=row)

    async def save_widget_settings(self, widget_id: str, settings: Dict[str, Any]) -> IntentResult:
        if self.model.find(widget_id) is None:
            return self._fail(NotFound(f"Widget {widget_id} is not on the dashboard"))
        previous = self.model.settings.get(widget_id)
        self.model.set_override(widget_id, settings)
        failed = await self._persist_settings(widget_id, previous)
        if failed is not None:
            return failed
        self.notifier.notify(f"{self._title(widget_id)} settings saved.", NotificationLevel.SUCCESS)
        return self._rerender_widget(widget_id)

    async def reset_widget_settings(self, widget_id: str) -> IntentResult:
        if self.model.find(widget_id) is None:
            return self._fail(NotFound(f"Widget {widget_id} is not on the dashboard"))
        previous = self.model.settings.get(widget_id)
        self.model.clear_override(widget_id)
        failed = await self._persist_settings(widget_id, previous)
        if failed is not None:
            return failed
        self.notifier.notify(f"{self._title(widget_id)} settings reset.", NotificationLevel.INFO)
        return self._rerender_widget(widget_id)
