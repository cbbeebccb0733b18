# api/server.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - FASTAPI SERVER
# ============================================================================
# Webhook receiver, health/log endpoints and a manual end-to-end trigger
# ============================================================================

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from payment_monitor.config import Settings, get_settings
from payment_monitor.exceptions import WebhookVerificationError
from payment_monitor.logging_config import configure_logging
from payment_monitor.services.monitor import PaymentFailureMonitor
from payment_monitor.storage.log_ring import DEFAULT_READ_LIMIT, LogEntry

logger = structlog.get_logger().bind(component="server")

ENDPOINTS = {
    "GET /": "Service status and information",
    "GET /health": "Health check endpoint",
    "GET /logs": "View recent logs",
    "POST /test": "Manual test run",
    "POST /webhook": "Stripe webhook endpoint",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    model_config = ConfigDict(populate_by_name=True)

    status: str
    timestamp: str
    logs_count: int = Field(alias="logsCount")


class LogsResponse(BaseModel):
    logs: List[LogEntry]
    total: int
    timestamp: str


class WebhookAck(BaseModel):
    received: bool = True


def parse_limit(raw: Optional[str]) -> int:
    """Query-string limit; missing, non-numeric or non-positive -> default."""
    try:
        limit = int(raw) if raw is not None else 0
    except ValueError:
        limit = 0
    return limit if limit > 0 else DEFAULT_READ_LIMIT


# ============================================================================
# APP FACTORY
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    monitor: Optional[PaymentFailureMonitor] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    monitor = monitor or PaymentFailureMonitor.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logging."""
        app.state.started_at = _now_iso()
        monitor.log.info(f"Stripe Payment Monitor started on port {settings.PORT}")
        if settings.MAIL_BACKEND != "memory" and not settings.gmail_configured:
            monitor.log.warning("GMAIL_REFRESH_TOKEN not set - notifications will fail")
        if not settings.STRIPE_WEBHOOK_SECRET:
            monitor.log.warning("STRIPE_WEBHOOK_SECRET not set - webhooks will be rejected")
        yield
        logger.info("shutting_down")

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="Emails an alert for every failed Stripe payment",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.monitor = monitor
    app.state.started_at = _now_iso()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        """Add response timing header."""
        start = time.perf_counter()
        response = await call_next(request)
        duration = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time-Ms"] = f"{duration:.2f}"
        return response

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        monitor.log.error(
            "Unhandled error",
            error=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # ------------------------------------------------------------------------
    # STATUS
    # ------------------------------------------------------------------------

    @app.get("/")
    async def service_info() -> Dict[str, Any]:
        return {
            "service": settings.SERVICE_NAME,
            "status": "running",
            "version": settings.VERSION,
            "endpoints": ENDPOINTS,
            "lastStarted": app.state.started_at,
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(
            status="healthy",
            timestamp=_now_iso(),
            logs_count=len(monitor.log),
        )

    @app.get("/logs", response_model=LogsResponse)
    async def recent_logs(limit: Optional[str] = None):
        return LogsResponse(
            logs=monitor.log.recent(parse_limit(limit)),
            total=len(monitor.log),
            timestamp=_now_iso(),
        )

    # ------------------------------------------------------------------------
    # MANUAL TEST
    # ------------------------------------------------------------------------

    @app.post("/test")
    async def manual_test():
        result = await monitor.run_test()
        if result.ok:
            return {
                "success": True,
                "message": "Test email sent successfully",
                "timestamp": _now_iso(),
            }
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": result.error,
                "timestamp": _now_iso(),
            },
        )

    # ------------------------------------------------------------------------
    # STRIPE WEBHOOK
    # ------------------------------------------------------------------------

    @app.post("/webhook", response_model=WebhookAck)
    async def stripe_webhook(request: Request):
        """
        Stripe webhook receiver.

        Reads the raw body for signature verification. Once the signature
        checks out the event is always acknowledged, even if the alert email
        could not be sent.
        """
        payload = await request.body()
        signature = request.headers.get("stripe-signature")

        try:
            event = monitor.verify(payload, signature)
        except WebhookVerificationError as e:
            return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

        result = await monitor.process(event)
        logger.info(
            "webhook_handled",
            event_type=result.event_type,
            event_id=result.event_id,
            status=result.status.value,
        )
        return WebhookAck()

    return app


app = create_app()


# ============================================================================
# MAIN
# ============================================================================

def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "payment_monitor.api.server:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.ENV == "development",
        log_level="info",
    )


if __name__ == "__main__":
    main()
