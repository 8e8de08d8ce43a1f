"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown:
       - builds the store, broadcaster and BoardService onto app.state
       - starts the live-channel heartbeat task
  3. Routers are registered.
  4. Exception handlers map domain errors to JSON responses and
     normalise unexpected errors.

Run with:
    python main.py                         # ws ping/pong every
                                           # HEARTBEAT_INTERVAL_SECONDS
    uvicorn main:app --reload --ws-ping-interval 30 --ws-ping-timeout 30

Use a single worker process: live fan-out is in-process.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from msgboard.api.routes import admin, auth, comments, live, messages, stats
from msgboard.core.config import Settings, settings as default_settings
from msgboard.core.errors import BoardError
from msgboard.core.logging import configure_logging, get_logger
from msgboard.services.board_service import BoardService
from msgboard.services.broadcaster import Broadcaster, ConnectionRegistry
from msgboard.services.rate_limiter import RateLimiter
from msgboard.storage import BoardStorage, build_storage

logger = get_logger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    storage: Optional[BoardStorage] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Startup:
          - Configure structured logging
          - Open the store (create tables when AUTO_CREATE_TABLES)
          - Wire registry → broadcaster → BoardService, start the heartbeat

        Shutdown:
          - Stop the heartbeat, close live sockets, release the store
        """
        configure_logging()
        store = storage or build_storage(settings)
        if settings.AUTO_CREATE_TABLES:
            await store.init()

        broadcaster = Broadcaster(
            ConnectionRegistry(),
            heartbeat_interval=settings.HEARTBEAT_INTERVAL_SECONDS,
            send_timeout=settings.BROADCAST_SEND_TIMEOUT_SECONDS,
        )
        app.state.broadcaster = broadcaster
        app.state.board_service = BoardService(
            store,
            broadcaster,
            RateLimiter(
                store,
                settings.RATE_LIMIT_SECONDS,
                enabled=settings.RATE_LIMIT_ENABLED,
            ),
        )
        heartbeat = asyncio.create_task(broadcaster.run_heartbeat())

        logger.info(
            "Starting up",
            app=settings.APP_NAME,
            env=settings.APP_ENV,
            storage=type(store).__name__,
            rate_limit=settings.RATE_LIMIT_ENABLED,
        )
        yield
        logger.info("Shutting down — closing live connections and storage")
        heartbeat.cancel()
        try:
            await heartbeat
        except asyncio.CancelledError:
            pass
        await broadcaster.close_all()
        await store.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Anonymous message board with ranked feeds and live "
            "WebSocket change notifications."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(messages.router)
    app.include_router(comments.router)
    app.include_router(admin.router)
    app.include_router(stats.router)
    app.include_router(live.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(BoardError)
    async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request rejected",
            path=request.url.path,
            method=request.method,
            error=type(exc).__name__,
            detail=exc.detail,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()


if __name__ == "__main__":
    # Keep-alive is protocol-level: uvicorn pings every interval and closes
    # peers whose pong has not arrived within the same interval.
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        ws_ping_interval=default_settings.HEARTBEAT_INTERVAL_SECONDS,
        ws_ping_timeout=default_settings.HEARTBEAT_INTERVAL_SECONDS,
    )
