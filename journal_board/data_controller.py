"""
Data controller: TinyDB-backed key-value store.
One table per namespace; records are upserted by their ``id`` field.
"""

import logging
import os
from pathlib import Path
from typing import Any

from tinydb import Query, TinyDB

logger = logging.getLogger(__name__)

_DATA_DIR = Path(os.getenv("JOURNAL_BOARD_ROOT", ".")) / "data"


class DataController:
    """Thin wrapper over TinyDB exposing get(namespace) / put(namespace, record)."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            db_path = _DATA_DIR / "journal.json"
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
        logger.info(f"TinyDB opened: {db_path}")

    # ── Read ──────────────────────────────────────────

    def get(self, namespace: str) -> list[dict]:
        """All records of a namespace (copies, safe to mutate)."""
        return [dict(r) for r in self.db.table(namespace).all()]

    def get_record(self, namespace: str, record_id: str) -> dict | None:
        Record = Query()
        results = self.db.table(namespace).search(Record.id == record_id)
        return dict(results[0]) if results else None

    # ── Write ─────────────────────────────────────────

    def put(self, namespace: str, record: dict[str, Any]):
        """Insert or replace the record with the same ``id``."""
        if "id" not in record:
            raise ValueError("record must carry an 'id'")
        Record = Query()
        self.db.table(namespace).upsert(dict(record), Record.id == record["id"])
        logger.debug(f"[{namespace}] Record stored: {record['id']}")

    def close(self):
        self.db.close()
