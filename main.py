"""
Journal Board entry point: start the FastAPI backend.
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from journal_board import api
from journal_board.catalog import CATALOG
from journal_board.config_loader import AppConfig, load_config
from journal_board.controller import DashboardController
from journal_board.data_controller import DataController
from journal_board.notifier import Notifier
from journal_board.session import EditSession
from journal_board.template_store import TemplateStore
from journal_board.trades import TradeFeed

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the database on shutdown."""
    yield

    logger.info("Shutting down...")
    app.state.data_controller.close()


def create_app(config: AppConfig | None = None, data_controller: DataController | None = None) -> FastAPI:
    """Create and wire the FastAPI application."""
    app = FastAPI(
        title="Journal Board API",
        description="Trading journal dashboard with editable widget templates",
        version="0.1.0",
        lifespan=lifespan,
    )

    if config is None:
        logger.info("Loading config...")
        config = load_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Core components ────────────────────────────────
    if data_controller is None:
        data_controller = DataController(config.db_path())

    store = TemplateStore(data_controller, namespace=config.namespace, default_layout=config.default_layout)
    notifier = Notifier(limit=config.notification_limit)
    controller = DashboardController(
        store,
        TradeFeed(),
        notifier,
        catalog=CATALOG,
        trade_ready_timeout=config.trade_ready_timeout,
    )
    session = EditSession(controller)

    api.init_api(controller=controller, session=session)
    app.include_router(api.router)

    app.state.config = config
    app.state.data_controller = data_controller
    app.state.controller = controller

    return app


def main():
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8400

    logger.info(f"Starting Journal Board backend (port={port})...")

    app = create_app()

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
