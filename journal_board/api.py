"""
FastAPI router: the dashboard's UI event surface and its rendered view tree.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from journal_board.errors import PersistenceFailure
from journal_board.models import CalendarSettings, DateFilter, Section
from journal_board.session import IntentResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# Injected by main.py
_controller = None
_session = None
_lock: Optional[asyncio.Lock] = None


def init_api(controller, session):
    """Inject the dashboard objects (called from main.py)."""
    global _controller, _session, _lock
    _controller = controller
    _session = session
    _lock = asyncio.Lock()


_STATUS = {
    "not-found": 404,
    "cancelled": 400,
    "configuration-error": 400,
    "invalid-name": 400,
    "invalid-slot": 400,
    "section-mismatch": 400,
    "persistence-failure": 503,
}


def _check(result: IntentResult) -> dict:
    if not result.ok:
        raise HTTPException(_STATUS.get(result.reason, 409), {"reason": result.reason, "message": result.message})
    return result.model_dump(mode="json")


def _require_initialized():
    if not _controller.initialized:
        raise HTTPException(409, "Dashboard is not initialized")


# ── Request bodies ──────────────────────────────────

class InitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trades: List[Dict[str, Any]] = Field(default_factory=list)
    strategies: List[Dict[str, Any]] = Field(default_factory=list)
    accounts: List[Dict[str, Any]] = Field(default_factory=list)
    active_account_id: Optional[Any] = Field(default=None, alias="activeAccountId")
    date_filter: Optional[DateFilter] = Field(default=None, alias="dateFilter")


class TemplateName(BaseModel):
    name: str


class AddWidgetRequest(BaseModel):
    section: Section
    widget_id: str
    index: int


class MoveWidgetRequest(BaseModel):
    section: Section
    index: int


# ── Dashboard ───────────────────────────────────────

@router.post("/dashboard/init")
async def init_dashboard(body: InitRequest) -> dict[str, Any]:
    """Publish the journal data and (re)initialize the dashboard."""
    async with _lock:
        _controller.feed.publish(body.trades)
        ok = await _controller.initialize(
            body.strategies, body.accounts, body.active_account_id, body.date_filter
        )
    if not ok:
        errors = [n.message for n in _controller.notifier.pending() if n.level.value == "error"]
        raise HTTPException(400, errors[-1] if errors else "Dashboard initialization failed")
    return await get_dashboard()


@router.get("/dashboard")
async def get_dashboard() -> dict[str, Any]:
    _require_initialized()
    ctx = _controller.context
    return {
        "mode": ctx.mode.value,
        "active_template": ctx.active_template_name,
        "editing_template": ctx.editing_template_name,
        "date_filter": ctx.date_filter.model_dump(mode="json", by_alias=True),
        "view": _controller.view_tree(),
    }


@router.get("/dashboard/layout")
async def get_layout() -> dict[str, Any]:
    model = _controller.context.layout_model
    return {
        "mode": model.mode.value,
        "layout": model.layout.model_dump(mode="json"),
        "settings": model.settings,
    }


@router.post("/dashboard/filter")
async def set_date_filter(date_filter: DateFilter) -> dict[str, Any]:
    _require_initialized()
    async with _lock:
        _controller.set_date_filter(date_filter)
    return await get_dashboard()


# ── Templates ───────────────────────────────────────

@router.get("/templates")
async def list_templates() -> dict[str, Any]:
    try:
        templates = await _controller.store.list_templates()
        active = await _controller.store.active_name()
    except PersistenceFailure as e:
        raise HTTPException(503, {"reason": e.reason, "message": e.message})
    return {
        "templates": [t.name for t in templates],
        "active": active,
    }


@router.post("/templates")
async def create_template(body: TemplateName) -> dict:
    async with _lock:
        return _check(await _session.create_template(body.name))


@router.post("/templates/{name}/select")
async def select_template(name: str) -> dict:
    async with _lock:
        return _check(await _session.select_template(name))


@router.post("/templates/{name}/edit")
async def edit_template(name: str) -> dict:
    async with _lock:
        return _check(await _session.edit_template(name))


@router.put("/templates/{name}/rename")
async def rename_template(name: str, body: TemplateName) -> dict:
    async with _lock:
        return _check(await _session.rename_template(name, body.name))


@router.delete("/templates/{name}")
async def delete_template(name: str) -> dict:
    async with _lock:
        return _check(await _session.delete_template(name))


# ── Edit lifecycle ──────────────────────────────────

@router.post("/edit/save")
async def save_edit() -> dict:
    async with _lock:
        return _check(await _session.save())


@router.post("/edit/cancel")
async def cancel_edit() -> dict:
    async with _lock:
        return _check(await _session.cancel())


# ── Widgets ─────────────────────────────────────────

@router.get("/widgets/available/{section}")
async def available_widgets(section: Section) -> list[dict]:
    catalog = _controller.catalog
    return [
        {"id": widget_id, "title": catalog.get(widget_id).title}
        for widget_id in _controller.context.layout_model.available_widgets(section, catalog)
    ]


@router.post("/widgets")
async def add_widget(body: AddWidgetRequest) -> dict:
    async with _lock:
        return _check(await _session.add_widget(body.section, body.widget_id, body.index))


@router.post("/widgets/{widget_id}/move")
async def move_widget(widget_id: str, body: MoveWidgetRequest) -> dict:
    async with _lock:
        return _check(await _session.move_widget(widget_id, body.section, body.index))


@router.delete("/widgets/{widget_id}")
async def delete_widget(widget_id: str, confirm: bool = False) -> dict:
    async with _lock:
        return _check(await _session.delete_widget(widget_id, confirm=lambda _: confirm))


@router.put("/widgets/{widget_id}/settings")
async def save_widget_settings(widget_id: str, settings: Dict[str, Any]) -> dict:
    async with _lock:
        return _check(await _session.save_widget_settings(widget_id, settings))


@router.delete("/widgets/{widget_id}/settings")
async def reset_widget_settings(widget_id: str) -> dict:
    async with _lock:
        return _check(await _session.reset_widget_settings(widget_id))


# ── Calendar settings ───────────────────────────────

@router.get("/calendar-settings")
async def get_calendar_settings() -> dict:
    return _controller.context.calendar_settings.model_dump(by_alias=True)


@router.put("/calendar-settings")
async def update_calendar_settings(settings: CalendarSettings) -> dict:
    async with _lock:
        try:
            await _controller.store.save_calendar_settings(settings)
        except PersistenceFailure as e:
            raise HTTPException(503, {"reason": e.reason, "message": e.message})
        _controller.context.calendar_settings = settings
        if _controller.initialized:
            _controller.render_section(Section.TABLES)
    return settings.model_dump(by_alias=True)


# ── Notifications ───────────────────────────────────

@router.get("/notifications")
async def get_notifications() -> list[dict]:
    return [n.model_dump(mode="json") for n in _controller.notifier.drain()]
