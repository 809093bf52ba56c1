"""FastAPI application entry point."""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cli.logging_config import setup_logging
from observability import log_run_summary
from web.deps import get_config
from web.routes import keyresults, objectives, org
from web.user_store import init_db

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    setup_logging(json_mode=True, level=config.logging.level)
    init_db()
    logger.info("web.startup")
    yield
    log_run_summary("web.run_summary")
    logger.info("web.shutdown")


app = FastAPI(
    title="Scorecard",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow frontend origin
frontend_origin = os.getenv("FRONTEND_ORIGIN", get_config().web.frontend_origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routes
app.include_router(org.router)
app.include_router(objectives.router)
app.include_router(keyresults.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
