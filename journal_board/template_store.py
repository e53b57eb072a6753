"""
Template store: persisted templates, the active-template pointer and the
standalone ``config`` record, layered over the hard-coded default layout.

Every record lives in one namespace of the key-value store:

    config            {id, layout, settings}
    templates         {id, data: [Template, ...]}
    activeTemplate    {id, data: {name}}
    calendarSettings  {id, data: {showWeeklyStats, showTradeDetails}}

Store calls are blocking (TinyDB), so they run through ``asyncio.to_thread``.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from journal_board.errors import (
    ActiveTemplateProtected,
    DuplicateName,
    InvalidName,
    NotFound,
    PersistenceFailure,
)
from journal_board.layout import LayoutModel
from journal_board.models import (
    DEFAULT_LAYOUT,
    EditMode,
    CalendarSettings,
    Layout,
    Template,
)

logger = logging.getLogger(__name__)

TEMPLATES_ID = "templates"
ACTIVE_ID = "activeTemplate"
CONFIG_ID = "config"
CALENDAR_ID = "calendarSettings"

DEFAULT_TEMPLATE_NAME = "Default"


class ResolutionSource(str, Enum):
    CREATED_DEFAULT = "created-default"
    TEMPLATE = "template"
    CONFIG = "config"
    DEFAULT = "default"
    FALLBACK = "fallback"


class Resolution(BaseModel):
    """Outcome of loading persisted state on startup."""
    layout: Layout
    settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    active_template: Optional[str] = None
    source: ResolutionSource
    error: Optional[str] = None


def _normalized(layout: Layout) -> Layout:
    # Persisted layouts are kept in their editing shape so placeholders survive.
    return LayoutModel(layout, mode=EditMode.EDITING).layout


class TemplateStore:
    def __init__(self, store, namespace: str = "dashboard", default_layout: Optional[Layout] = None):
        self.store = store
        self.namespace = namespace
        self.default_layout = default_layout or DEFAULT_LAYOUT

    # ── Raw record access ────────────────────────────

    async def _read(self) -> Dict[str, dict]:
        try:
            records = await asyncio.to_thread(self.store.get, self.namespace)
        except Exception as e:
            raise PersistenceFailure(f"Failed to read '{self.namespace}' records", e) from e
        return {r.get("id"): r for r in records or [] if isinstance(r, dict)}

    async def _write(self, record: dict):
        try:
            await asyncio.to_thread(self.store.put, self.namespace, record)
        except Exception as e:
            raise PersistenceFailure(f"Failed to save record '{record.get('id')}'", e) from e

    @staticmethod
    def _raw_templates(records: Dict[str, dict]) -> list:
        data = (records.get(TEMPLATES_ID) or {}).get("data")
        return data if isinstance(data, list) else []

    @classmethod
    def _templates_of(cls, records: Dict[str, dict]) -> List[Template]:
        """Decoded templates; malformed entries are logged and skipped."""
        templates = []
        for raw in cls._raw_templates(records):
            try:
                templates.append(Template.model_validate(raw))
            except (ValidationError, TypeError, ValueError) as e:
                logger.error(f"Skipping malformed template record: {e}")
        return templates

    @staticmethod
    def _active_of(records: Dict[str, dict]) -> Optional[str]:
        data = (records.get(ACTIVE_ID) or {}).get("data")
        return data.get("name") if isinstance(data, dict) else None

    async def _write_templates(self, templates: List[Template]):
        await self._write({
            "id": TEMPLATES_ID,
            "data": [t.model_dump(mode="json") for t in templates],
        })

    async def _write_active(self, name: str):
        await self._write({"id": ACTIVE_ID, "data": {"name": name}})

    # ── Resolution ──────────────────────────────────

    async def resolve(self) -> Resolution:
        """
        Decide which layout/settings to start with:
        no templates -> create and activate Default; else the active template;
        else the standalone config record; else the hard-coded default.

        Malformed records are skipped. If any were skipped and nothing else
        resolved, the result is FALLBACK with the default layout.
        """
        try:
            records = await self._read()
            if not self._raw_templates(records):
                default = Template(name=DEFAULT_TEMPLATE_NAME, layout=_normalized(self.default_layout))
                await self._write_templates([default])
                await self._write_active(default.name)
                logger.info("No templates found, created Default template")
                return Resolution(
                    layout=default.layout,
                    settings={},
                    active_template=default.name,
                    source=ResolutionSource.CREATED_DEFAULT,
                )
        except PersistenceFailure as e:
            logger.error(f"Error loading dashboard config: {e}")
            return Resolution(layout=self.default_layout, source=ResolutionSource.FALLBACK, error=str(e))

        errors = []
        templates = self._templates_of(records)
        if len(templates) < len(self._raw_templates(records)):
            errors.append("Malformed template records")

        active = self._active_of(records)
        for template in templates:
            if template.name == active:
                return Resolution(
                    layout=template.layout,
                    settings=template.settings,
                    active_template=template.name,
                    source=ResolutionSource.TEMPLATE,
                )

        config = records.get(CONFIG_ID)
        if config and config.get("layout"):
            try:
                return Resolution(
                    layout=Layout.model_validate(config["layout"]),
                    settings=config.get("settings") or {},
                    active_template=None,
                    source=ResolutionSource.CONFIG,
                )
            except (ValidationError, TypeError, ValueError) as e:
                logger.error(f"Skipping malformed config record: {e}")
                errors.append("Malformed config record")

        if errors:
            error = "; ".join(errors)
            logger.error(f"Error loading dashboard config: {error}, using default layout")
            return Resolution(layout=self.default_layout, source=ResolutionSource.FALLBACK, error=error)
        return Resolution(layout=self.default_layout, source=ResolutionSource.DEFAULT)

    # ── Queries ─────────────────────────────────────

    async def list_templates(self) -> List[Template]:
        return self._templates_of(await self._read())

    async def get_template(self, name: str) -> Template:
        for template in await self.list_templates():
            if template.name == name:
                return template
        raise NotFound(f"Template '{name}' not found")

    async def active_name(self) -> Optional[str]:
        return self._active_of(await self._read())

    # ── Mutations ───────────────────────────────────

    async def save(self, layout: Layout, settings: Dict[str, Dict[str, Any]]):
        """Write the config record and mirror it into the active template."""
        layout = _normalized(layout)
        settings = {k: dict(v) for k, v in (settings or {}).items()}
        await self._write({
            "id": CONFIG_ID,
            "layout": layout.model_dump(mode="json"),
            "settings": settings,
        })

        records = await self._read()
        active = self._active_of(records)
        if not active:
            return
        templates = self._templates_of(records)
        for i, template in enumerate(templates):
            if template.name == active:
                templates[i] = Template(name=active, layout=layout, settings=settings)
                await self._write_templates(templates)
                logger.debug(f"[{active}] Template updated")
                return

    async def create_template(
        self, name: str, layout: Optional[Layout] = None, settings: Optional[Dict[str, Dict[str, Any]]] = None
    ) -> Template:
        name = (name or "").strip()
        if not name:
            raise InvalidName("Template name cannot be empty")
        templates = await self.list_templates()
        if any(t.name == name for t in templates):
            raise DuplicateName(f"Template '{name}' already exists")

        template = Template(
            name=name,
            layout=_normalized(layout if layout is not None else Layout.empty()),
            settings=settings or {},
        )
        templates.append(template)
        await self._write_templates(templates)
        logger.info(f"[{name}] Template created")
        return template

    async def delete_template(self, name: str):
        records = await self._read()
        if name == self._active_of(records):
            raise ActiveTemplateProtected("Cannot delete the active template.")
        templates = self._templates_of(records)
        remaining = [t for t in templates if t.name != name]
        if len(remaining) == len(templates):
            raise NotFound(f"Template '{name}' not found")
        await self._write_templates(remaining)
        logger.info(f"[{name}] Template deleted")

    async def rename_template(self, old: str, new: str) -> Template:
        new = (new or "").strip()
        if not new:
            raise InvalidName("Template name cannot be empty")
        records = await self._read()
        templates = self._templates_of(records)
        if new != old and any(t.name == new for t in templates):
            raise DuplicateName(f"Template '{new}' already exists")
        for i, template in enumerate(templates):
            if template.name == old:
                renamed = template.model_copy(update={"name": new})
                templates[i] = renamed
                await self._write_templates(templates)
                if self._active_of(records) == old:
                    await self._write_active(new)
                logger.info(f"[{old}] Template renamed to {new}")
                return renamed
        raise NotFound(f"Template '{old}' not found")

    async def set_active(self, name: str) -> Template:
        template = await self.get_template(name)
        await self._write_active(name)
        return template

    # ── Calendar settings ───────────────────────────

    async def load_calendar_settings(self) -> CalendarSettings:
        record = (await self._read()).get(CALENDAR_ID) or {}
        return CalendarSettings.model_validate(record.get("data") or {})

    async def save_calendar_settings(self, settings: CalendarSettings):
        await self._write({"id": CALENDAR_ID, "data": settings.model_dump(by_alias=True)})
