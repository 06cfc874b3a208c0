"""FastAPI application entry point."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ims import models  # noqa: F401  registers tables on Base.metadata
from ims.api.routes import api_router
from ims.core.config import settings
from ims.core.rate_limit import limiter
from ims.db.base import Base
from ims.db.session import SessionLocal, engine
from ims.store.change_feed import change_feed
from ims.store.collections import ALL_COLLECTIONS, DEFAULT_ORDERING
from ims.store.document_store import DocumentNotFoundError, DocumentStore, StoreWriteError
from sqlalchemy import text


# WebSocket Connection Manager for live collection snapshots
class ConnectionManager:
    """Manages WebSocket connections, one channel per collection."""

    def __init__(self, max_connections_per_channel: int = 200):
        self.max_connections_per_channel = max_connections_per_channel
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}

    async def connect(self, websocket: WebSocket, channel: str) -> bool:
        """Accept a WebSocket into a channel.

        Returns True if connection was successful, False if rejected.
        """
        if len(self.active_connections.get(channel, [])) >= self.max_connections_per_channel:
            logger.warning(f"WebSocket connection rejected: channel '{channel}' at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "channel": channel,
            "last_ping": datetime.now(timezone.utc),
        }

        logger.debug(f"WebSocket connected to channel '{channel}'")
        return True

    def disconnect(self, websocket: WebSocket, channel: str):
        if websocket in self.active_connections.get(channel, []):
            self.active_connections[channel].remove(websocket)
        self.connection_metadata.pop(id(websocket), None)
        logger.debug(f"WebSocket disconnected from channel '{channel}'")

    def update_ping(self, websocket: WebSocket):
        ws_id = id(websocket)
        if ws_id in self.connection_metadata:
            self.connection_metadata[ws_id]["last_ping"] = datetime.now(timezone.utc)

    async def broadcast(self, message: Dict[str, Any], channel: str):
        """Broadcast a message to all connections in a channel."""
        disconnected = []
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                disconnected.append(connection)

        for conn in disconnected:
            self.disconnect(conn, channel)

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        if channel:
            return len(self.active_connections.get(channel, []))
        return sum(len(conns) for conns in self.active_connections.values())


ws_manager = ConnectionManager(settings.ws_max_connections_per_channel)

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json
    import sys

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        csp_origins = " ".join(settings.cors_origins_list)
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            f"connect-src 'self' ws: wss: {csp_origins};"
        )
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip logging for health checks and docs
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        request_logger.info(f"Request: {request.method} {request.url.path} - Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            raise

        process_time = time.time() - start_time
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"Response: {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {process_time:.3f}s - Client: {client_ip}"
        )
        return response


def _snapshot_message(collection: str, records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "event": "snapshot",
        "collection": collection,
        "data": records,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _load_snapshot(collection: str) -> List[Dict[str, Any]]:
    """Current records of a collection, read with a short-lived session."""
    order_by, descending = DEFAULT_ORDERING[collection]
    db = SessionLocal()
    try:
        return DocumentStore(db).get_all(collection, order_by, descending)
    finally:
        db.close()


def _snapshot_forwarder(collection: str, loop: asyncio.AbstractEventLoop) -> Callable[[List[Dict[str, Any]]], None]:
    """Listener that relays store snapshots to the collection's sockets.

    Store writes run in worker threads, so the broadcast is handed to the loop.
    """
    def forward(records: List[Dict[str, Any]]) -> None:
        if not ws_manager.get_connection_count(collection):
            return
        asyncio.run_coroutine_threadsafe(
            ws_manager.broadcast(_snapshot_message(collection, records), channel=collection),
            loop,
        )

    return forward


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Inventory Management System")

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")

    loop = asyncio.get_running_loop()
    unsubscribers = []
    for collection in ALL_COLLECTIONS:
        order_by, descending = DEFAULT_ORDERING[collection]
        unsubscribers.append(
            change_feed.subscribe(collection, _snapshot_forwarder(collection, loop), order_by, descending)
        )
    logger.info(f"Live snapshots enabled for {len(unsubscribers)} collections")

    yield

    for unsubscribe in unsubscribers:
        unsubscribe()

    logger.info("Shutting down Inventory Management System")


app = FastAPI(
    title="Inventory Management System",
    description="Backend API for ship inventory, purchasing and supplier stock",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=True,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DocumentNotFoundError)
async def document_not_found_handler(request: Request, exc: DocumentNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(StoreWriteError)
async def store_write_error_handler(request: Request, exc: StoreWriteError):
    logger.error(f"Write failed on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Failed to save changes"},
    )


# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,  # Cache preflight for 10 minutes
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with database and WebSocket checks."""
    checks = {
        "database": "unknown",
        "websocket_manager": "unknown",
    }

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    connection_count = ws_manager.get_connection_count()
    checks["websocket_manager"] = f"healthy ({connection_count} connections)"

    all_healthy = all(c.startswith("healthy") for c in checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Inventory Management System API",
        "docs": "/docs",
        "health": "/health",
    }


@app.websocket("/ws/collections/{collection}")
async def websocket_collection(websocket: WebSocket, collection: str):
    """Live view of one collection.

    Sends the full snapshot on connect and again after every committed change.
    Clients may send "ping" and get "pong" back.
    """
    if collection not in ALL_COLLECTIONS:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not await ws_manager.connect(websocket, collection):
        return

    try:
        records = await run_in_threadpool(_load_snapshot, collection)
        await websocket.send_json(_snapshot_message(collection, records))

        while True:
            data = await websocket.receive_text()
            if data == "ping":
                ws_manager.update_ping(websocket)
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket, collection)
    except Exception as e:
        logger.error(f"WebSocket error in {collection}: {e}", exc_info=True)
        ws_manager.disconnect(websocket, collection)
