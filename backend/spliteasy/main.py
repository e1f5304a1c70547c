import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from spliteasy.core.config import settings
from spliteasy.api.auth import router as auth_router
from spliteasy.api.friends import router as friends_router
from spliteasy.api.parsing import router as parsing_router
from spliteasy.api.receipts import router as receipts_router
from spliteasy.api.assignments import router as assignments_router

logger = logging.getLogger("spliteasy.requests")

QUIET_PATHS = {"/api/health"}


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class RequestTimingMiddleware:
    """Plain ASGI middleware: one log line per HTTP request with status and latency.

    Requests slower than settings.slow_request_ms are logged as warnings;
    health checks only show up at DEBUG.
    """
    def __init__(self, app: ASGIApp, slow_ms: int):
        self.app = app
        self.slow_ms = slow_ms

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status = 500

        async def capture_status(message: Message):
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, capture_status)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            path = scope.get("path", "?")
            if elapsed_ms >= self.slow_ms:
                level = logging.WARNING
            elif path in QUIET_PATHS:
                level = logging.DEBUG
            else:
                level = logging.INFO
            logger.log(level, "%s %s -> %d in %.0fms", scope.get("method", "?"), path, status, elapsed_ms)


configure_logging()

app = FastAPI(title="SplitEasy API", version="0.1.0")

cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

app.add_middleware(RequestTimingMiddleware, slow_ms=settings.slow_request_ms)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth_router)
app.include_router(friends_router)
app.include_router(parsing_router)
app.include_router(receipts_router)
app.include_router(assignments_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
