"""x402 Indexer API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Full replay completes before the app serves a single request (startup barrier)
    - Replay or chain handshake failure aborts startup: never serve unreplayed state
    - Engine disposed on every exit path, aborted startup included
    - Ingestor stopped gracefully on shutdown: the in-flight cycle finishes first
    - CORS configured from settings (not hardcoded)

Design Decisions:
    - Lifespan over @app.on_event: one place for startup order and cleanup
    - Ingestor runs as an asyncio task in the API process (single writer)
    - Error handlers live in api/error_handlers.py
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from x402_indexer import __version__
from x402_indexer.api.error_handlers import register_error_handlers
from x402_indexer.api.routes import health, workflows
from x402_indexer.bootstrap import (
    build_chain_client, build_ingestor, prepare_database, verify_chain,
)
from x402_indexer.config import get_settings
from x402_indexer.infrastructure.database import init_db
from x402_indexer.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )

    try:
        stats = await prepare_database(manager, settings)
        logger.info(
            f"Replay finished: {stats.events_processed} events, "
            f"{stats.workflows_rebuilt} workflows",
            extra={"duration_ms": stats.duration_ms},
        )

        app.state.ingestor = None
        stop_event = asyncio.Event()
        ingest_task: asyncio.Task | None = None
        if settings.ingestor_enabled and settings.contract_configured:
            chain = build_chain_client(settings)
            await verify_chain(chain, settings)
            ingestor = build_ingestor(manager, chain, settings)
            app.state.ingestor = ingestor
            ingest_task = asyncio.create_task(ingestor.run_forever(stop_event))
        else:
            logger.warning("Ingestor disabled: serving replayed state only")
    except Exception:
        logger.critical("Startup aborted", exc_info=True)
        await manager.dispose()
        raise

    logger.info("x402 indexer started")
    yield
    logger.info("x402 indexer shutting down")

    stop_event.set()
    if ingest_task is not None:
        await ingest_task
    await manager.dispose()


app = FastAPI(
    title="x402 Workflow Indexer", version=__version__, lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(workflows.router)

register_error_handlers(app)
