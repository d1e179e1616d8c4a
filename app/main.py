# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, all routers, and the
startup wiring: subscriber hub → ingestion pipeline → MQTT transport.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import alerts, health, live, telemetry, transport, vehicles
from app.database import create_tables
from app.config import settings
from app.services.heartbeat import run_heartbeat
from app.services.ingestion_pipeline import IngestionPipeline
from app.services.mqtt_adapter import MqttTransportAdapter
from app.services.subscriber_hub import SubscriberHub
from app.utils.logger import get_logger
import time
import asyncio

logger = get_logger(__name__)

app = FastAPI(
    title="Smart Car Telemetry API",
    description="MQTT telemetry ingestion, threshold alerts and live dashboard updates.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard runs on another origin) ──────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for REST endpoints.
    Health and docs stay open. WebSockets are not HTTP requests and pass through.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(telemetry.router, prefix="/api/v1", tags=["📡 Telemetry"])
app.include_router(alerts.router,    prefix="/api/v1", tags=["🔔 Alerts"])
app.include_router(vehicles.router,  prefix="/api/v1", tags=["🚗 Vehicles"])
app.include_router(transport.router, prefix="/api/v1", tags=["🛰  MQTT"])
app.include_router(health.router,    prefix="/api/v1", tags=["💚 Health"])
app.include_router(live.router,      prefix="/api/v1", tags=["🔴 Live"])

# Runtime objects exist before startup so dependencies resolve in tests too
app.state.hub = SubscriberHub()
app.state.pipeline = IngestionPipeline(app.state.hub)
app.state.transport = None
app.state.heartbeat = None


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Smart Car Telemetry backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")

    app.state.hub.bind(asyncio.get_running_loop())

    if settings.MQTT_ENABLED:
        app.state.transport = MqttTransportAdapter(app.state.pipeline, app.state.hub)
        app.state.transport.start(asyncio.get_running_loop())
        logger.info(f"📡 MQTT topics: {', '.join(app.state.transport.topic_filters)}")
    else:
        logger.warning("MQTT disabled — telemetry only via POST /api/v1/telemetry")

    app.state.heartbeat = asyncio.create_task(run_heartbeat(app.state.hub), name="heartbeat")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Smart Car Telemetry backend shutting down...")
    if app.state.heartbeat is not None:
        app.state.heartbeat.cancel()
    if app.state.transport is not None:
        app.state.transport.stop()
