"""Even reviews FastAPI application."""

import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from even.database import close_db, init_db
from even.logging_config import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from even.middleware.rate_limit import RateLimitMiddleware
from even.redis import close_redis, get_redis, init_redis
from even.reviews.api import router as reviews_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Init logging, the database and Redis on startup; release them on shutdown."""
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_format = os.getenv("LOG_FORMAT", "json") == "json"
    configure_logging(level=log_level, json_format=json_format)

    logger.info("starting_database_init")
    await init_db()

    await init_redis()

    logger.info("application_started")
    yield

    logger.info("shutting_down")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="Even Reviews",
    description="Post-chat reviews, reports and emergency reports for Even Dating",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8081").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RateLimitMiddleware, redis_getter=get_redis)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    bind_request_context(request_id, request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(reviews_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "even-reviews"}
