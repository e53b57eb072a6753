"""
Config loader: parse the YAML config file into a pydantic model.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from journal_board.models import Layout

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    data_dir: str = "data"
    db_file: str = "journal.json"
    namespace: str = "dashboard"
    # Seconds to wait for trade data before giving up on initialization
    trade_ready_timeout: float = 2.0
    notification_limit: int = 50
    default_layout: Optional[Layout] = None
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    def db_path(self, root: Optional[Path] = None) -> Path:
        base = root if root is not None else root_dir()
        data_dir = Path(self.data_dir)
        if not data_dir.is_absolute():
            data_dir = base / data_dir
        return data_dir / self.db_file


_CONFIG_SEARCH_PATHS = [
    "config/config.yaml",
    "config.yaml",
]


def root_dir() -> Path:
    return Path(os.getenv("JOURNAL_BOARD_ROOT", "."))


def find_config_file() -> Optional[Path]:
    """First existing config file under the root, or None."""
    base = root_dir()
    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path
    return None


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """Load the YAML config; a missing file yields the defaults."""
    if path is None:
        path = find_config_file()
    if path is None or not Path(path).exists():
        logger.info("No config file found, using defaults")
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    logger.info(f"Loaded config: {path}")
    return AppConfig.model_validate(raw)
