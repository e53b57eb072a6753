import logging
from pathlib import Path

from journal_board.config_loader import AppConfig, load_config
from journal_board.notifier import NotificationLevel, Notifier


def test_missing_config_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("JOURNAL_BOARD_ROOT", str(tmp_path))

    config = load_config()

    assert config == AppConfig()
    assert config.db_path() == tmp_path / "data" / "journal.json"


def test_load_config_from_root(tmp_path, monkeypatch):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "config.yaml").write_text(
        "namespace: journal\n"
        "trade_ready_timeout: 5\n"
        "default_layout:\n"
        "  metrics: [summary]\n"
        "  tables: [placeholder, yearly-overview]\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("JOURNAL_BOARD_ROOT", str(tmp_path))

    config = load_config()

    assert config.namespace == "journal"
    assert config.trade_ready_timeout == 5.0
    assert config.default_layout.metrics[0].widget_id == "summary"
    assert config.default_layout.tables[0].is_empty


def test_absolute_data_dir(tmp_path):
    config = AppConfig(data_dir=str(tmp_path / "store"), db_file="db.json")

    assert config.db_path(Path("/elsewhere")) == tmp_path / "store" / "db.json"


def test_notifier_logs_and_bounds_queue(caplog):
    notifier = Notifier(limit=2)

    with caplog.at_level(logging.INFO):
        notifier.notify("one")
        notifier.notify("two", "warning")
        notifier.notify("three", NotificationLevel.ERROR)

    assert [n.message for n in notifier.pending()] == ["two", "three"]
    assert [n.level for n in notifier.drain()] == [NotificationLevel.WARNING, NotificationLevel.ERROR]
    assert notifier.drain() == []
    assert any(r.levelno == logging.ERROR and "three" in r.getMessage() for r in caplog.records)
