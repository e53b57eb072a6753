import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import MemoryStore
from journal_board.errors import (
    ActiveTemplateProtected,
    DuplicateName,
    InvalidName,
    NotFound,
    PersistenceFailure,
)
from journal_board.layout import LayoutModel
from journal_board.models import DEFAULT_LAYOUT, CalendarSettings, EditMode, Layout
from journal_board.template_store import ResolutionSource, TemplateStore

SWING = Layout(metrics=["summary"], tables=["yearly-overview"], charts=[["pnlByPair"]])
SWING_SETTINGS = {"pnlByPair": {"dotColor": "#123456"}}


def normalized(layout):
    return LayoutModel(layout, mode=EditMode.EDITING).layout.model_dump(mode="json")


def template_record(*templates):
    return {"id": "templates", "data": [
        {"name": name, "layout": layout.model_dump(mode="json"), "settings": settings}
        for name, layout, settings in templates
    ]}


# ── Resolution ──────────────────────────────────────

def test_first_load_creates_default_template(db):
    store = TemplateStore(db)

    resolution = asyncio.run(store.resolve())

    assert resolution.source == ResolutionSource.CREATED_DEFAULT
    assert resolution.active_template == "Default"
    dumped = resolution.layout.model_dump(mode="json")
    assert dumped["metrics"] == ["account-balance", "trade-win", "daily-win", "current-streak"]
    assert dumped["tables"] == ["recent-trades", "trading-calendar"]
    assert dumped["charts"] == [
        ["drawdown", "balance"],
        ["daily-net-pnl", "net-cumulative"],
        ["cumulative-daily-net", "trade-count"],
    ]
    assert [t.name for t in asyncio.run(store.list_templates())] == ["Default"]
    assert asyncio.run(store.active_name()) == "Default"


def test_empty_templates_record_creates_default():
    memory = MemoryStore({"dashboard": [{"id": "templates", "data": []}]})

    resolution = asyncio.run(TemplateStore(memory).resolve())

    assert resolution.source == ResolutionSource.CREATED_DEFAULT
    assert ("dashboard", "activeTemplate") in memory.puts


def test_resolves_active_template():
    memory = MemoryStore({"dashboard": [
        template_record(("Default", DEFAULT_LAYOUT, {}), ("Swing", SWING, SWING_SETTINGS)),
        {"id": "activeTemplate", "data": {"name": "Swing"}},
    ]})

    resolution = asyncio.run(TemplateStore(memory).resolve())

    assert resolution.source == ResolutionSource.TEMPLATE
    assert resolution.active_template == "Swing"
    assert resolution.settings == SWING_SETTINGS
    assert resolution.layout.metrics[0].widget_id == "summary"


def test_falls_back_to_config_record_without_active_template():
    memory = MemoryStore({"dashboard": [
        template_record(("Default", DEFAULT_LAYOUT, {})),
        {"id": "config", "layout": SWING.model_dump(mode="json"), "settings": SWING_SETTINGS},
    ]})

    resolution = asyncio.run(TemplateStore(memory).resolve())

    assert resolution.source == ResolutionSource.CONFIG
    assert resolution.active_template is None
    assert resolution.settings == SWING_SETTINGS


def test_falls_back_to_hard_coded_default():
    memory = MemoryStore({"dashboard": [
        template_record(("Default", DEFAULT_LAYOUT, {})),
        {"id": "activeTemplate", "data": {"name": "Gone"}},
    ]})

    resolution = asyncio.run(TemplateStore(memory).resolve())

    assert resolution.source == ResolutionSource.DEFAULT
    assert resolution.layout == DEFAULT_LAYOUT
    assert resolution.settings == {}


def test_read_failure_resolves_to_default():
    broken = MagicMock()
    broken.get.side_effect = OSError("disk gone")

    resolution = asyncio.run(TemplateStore(broken).resolve())

    assert resolution.source == ResolutionSource.FALLBACK
    assert resolution.layout == DEFAULT_LAYOUT
    assert "dashboard" in resolution.error


def test_nameless_template_is_skipped():
    memory = MemoryStore({"dashboard": [
        {"id": "templates", "data": [
            {"layout": {"metrics": ["trade-win"]}},
            {"name": "Swing", "layout": SWING.model_dump(mode="json"), "settings": SWING_SETTINGS},
        ]},
        {"id": "activeTemplate", "data": {"name": "Swing"}},
    ]})
    store = TemplateStore(memory)

    resolution = asyncio.run(store.resolve())

    assert resolution.source == ResolutionSource.TEMPLATE
    assert resolution.active_template == "Swing"
    assert [t.name for t in asyncio.run(store.list_templates())] == ["Swing"]
    assert memory.puts == []


def test_malformed_records_resolve_to_fallback():
    memory = MemoryStore({"dashboard": [
        {"id": "templates", "data": [{"layout": {"metrics": ["trade-win"]}}]},
        {"id": "config", "layout": {"charts": [5]}},
    ]})

    resolution = asyncio.run(TemplateStore(memory).resolve())

    assert resolution.source == ResolutionSource.FALLBACK
    assert resolution.layout == DEFAULT_LAYOUT
    assert "config" in resolution.error
    # Corrupt templates are not overwritten with a fresh Default.
    assert memory.puts == []


# ── Save / templates ────────────────────────────────

def test_save_then_resolve_round_trip(db):
    store = TemplateStore(db)
    asyncio.run(store.resolve())

    asyncio.run(store.save(SWING, SWING_SETTINGS))
    resolution = asyncio.run(store.resolve())

    assert resolution.layout.model_dump(mode="json") == normalized(SWING)
    assert resolution.settings == SWING_SETTINGS
    config = db.get_record("dashboard", "config")
    assert config["layout"] == normalized(SWING)


def test_save_without_active_template_only_writes_config():
    memory = MemoryStore()
    store = TemplateStore(memory)

    asyncio.run(store.save(SWING, {}))

    assert memory.puts == [("dashboard", "config")]


def test_create_template_twice_keeps_one(db):
    store = TemplateStore(db)

    asyncio.run(store.create_template("Swing", SWING, SWING_SETTINGS))
    with pytest.raises(DuplicateName):
        asyncio.run(store.create_template("Swing", Layout.empty(), {}))

    swings = [t for t in asyncio.run(store.list_templates()) if t.name == "Swing"]
    assert len(swings) == 1
    assert swings[0].layout.model_dump(mode="json") == normalized(SWING)
    assert swings[0].settings == SWING_SETTINGS


def test_create_template_with_blank_name_is_rejected(memory_store):
    with pytest.raises(InvalidName):
        asyncio.run(TemplateStore(memory_store).create_template("   "))


def test_new_template_defaults_to_placeholders(memory_store):
    template = asyncio.run(TemplateStore(memory_store).create_template("Blank"))

    dumped = template.layout.model_dump(mode="json")
    assert dumped["metrics"] == ["placeholder"] * 4
    assert dumped["charts"] == [["placeholder", "placeholder"]] * 3


def test_delete_active_template_is_protected(db):
    store = TemplateStore(db)
    asyncio.run(store.resolve())
    asyncio.run(store.create_template("Swing", SWING, {}))
    before = [t.model_dump() for t in asyncio.run(store.list_templates())]

    with pytest.raises(ActiveTemplateProtected):
        asyncio.run(store.delete_template("Default"))

    assert [t.model_dump() for t in asyncio.run(store.list_templates())] == before

    asyncio.run(store.delete_template("Swing"))
    assert [t.name for t in asyncio.run(store.list_templates())] == ["Default"]
    with pytest.raises(NotFound):
        asyncio.run(store.delete_template("Swing"))


def test_rename_follows_active_pointer(db):
    store = TemplateStore(db)
    asyncio.run(store.resolve())
    asyncio.run(store.create_template("Swing", SWING, {}))

    with pytest.raises(DuplicateName):
        asyncio.run(store.rename_template("Default", "Swing"))

    renamed = asyncio.run(store.rename_template("Default", "Main"))

    assert renamed.name == "Main"
    assert asyncio.run(store.active_name()) == "Main"
    assert [t.name for t in asyncio.run(store.list_templates())] == ["Main", "Swing"]
    with pytest.raises(NotFound):
        asyncio.run(store.rename_template("Default", "Other"))


def test_set_active_unknown_template(memory_store):
    with pytest.raises(NotFound):
        asyncio.run(TemplateStore(memory_store).set_active("Nope"))


def test_write_failure_is_wrapped():
    broken = MagicMock()
    broken.get.return_value = []
    broken.put.side_effect = OSError("read-only")

    with pytest.raises(PersistenceFailure) as excinfo:
        asyncio.run(TemplateStore(broken).save(SWING, {}))

    assert isinstance(excinfo.value.cause, OSError)


# ── Calendar settings ───────────────────────────────

def test_calendar_settings_default_and_round_trip(db):
    store = TemplateStore(db)

    assert asyncio.run(store.load_calendar_settings()) == CalendarSettings()

    asyncio.run(store.save_calendar_settings(CalendarSettings(showWeeklyStats=False)))

    loaded = asyncio.run(store.load_calendar_settings())
    assert loaded.show_weekly_stats is False
    assert loaded.show_trade_details is True
    assert db.get_record("dashboard", "calendarSettings")["data"] == {
        "showWeeklyStats": False,
        "showTradeDetails": True,
    }
